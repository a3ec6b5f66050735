"""Administrative endpoints. Everything under /admin requires an admin role."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.auth import require_admin
from app.dependencies import get_maintenance_service
from app.schemas.common import ApiResponse
from app.services.operations.maintenance_service import MaintenanceService
from app.utils.logging import get_logger
from app.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

MaintenanceServiceDep = Annotated[MaintenanceService, Depends(get_maintenance_service)]


@router.post(
    "/maintenance/run",
    response_model=ApiResponse,
    summary="Run every maintenance sweep",
    description="Expires postings, bids and tenders, advances waterfall tenders, refreshes "
    "auto-refresh postings and marks overdue invoices.",
    operation_id="run_maintenance",
)
async def run_maintenance(request: Request, maintenance_service: MaintenanceServiceDep) -> ApiResponse:
    results = await maintenance_service.run_all()
    return create_api_response(data=results, message="Maintenance completed", request=request)


@router.post(
    "/maintenance/{sweep}",
    response_model=ApiResponse,
    summary="Run one maintenance sweep",
    operation_id="run_maintenance_sweep",
)
async def run_sweep(request: Request, sweep: str, maintenance_service: MaintenanceServiceDep) -> ApiResponse:
    if sweep not in MaintenanceService.SWEEPS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=create_error_detail(
                title="Not Found",
                status=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown sweep '{sweep}'. Available: {', '.join(MaintenanceService.SWEEPS)}",
                request=request,
            ).model_dump(mode="json"),
        )
    affected = await getattr(maintenance_service, sweep)()
    LOGGER.info(f"Maintenance sweep {sweep} affected {affected} row(s)")
    return create_api_response(data={sweep: affected}, message=f"{sweep} completed", request=request)
