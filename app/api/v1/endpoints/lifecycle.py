"""Read-only view of the status lifecycles the API enforces."""

from fastapi import APIRouter, HTTPException, Request, status

from app.core.lifecycle import STATUS_ENUMS, TRANSITION_TABLES, is_terminal
from app.schemas.common import ApiResponse
from app.schemas.dispatch import LifecycleTable
from app.utils.responses import create_api_response, create_error_detail

router = APIRouter()


def describe(entity: str) -> LifecycleTable:
    table = TRANSITION_TABLES[entity]
    statuses = [s.value for s in STATUS_ENUMS[entity]]
    return LifecycleTable(
        entity=entity,
        statuses=statuses,
        terminal=[s for s in statuses if is_terminal(entity, s)],
        transitions={s: sorted(table.get(s, ())) for s in statuses},
    )


@router.get("", response_model=ApiResponse, summary="List lifecycle entities", operation_id="list_lifecycles")
async def list_lifecycles(request: Request) -> ApiResponse:
    return create_api_response(data=sorted(TRANSITION_TABLES), message="Lifecycle entities", request=request)


@router.get(
    "/{entity}",
    response_model=ApiResponse,
    summary="Status lifecycle for an entity",
    operation_id="get_lifecycle",
)
async def get_lifecycle(request: Request, entity: str) -> ApiResponse:
    if entity not in TRANSITION_TABLES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=create_error_detail(
                title="Not Found",
                status=status.HTTP_404_NOT_FOUND,
                detail=f"No lifecycle for '{entity}'",
                request=request,
            ).model_dump(mode="json"),
        )
    return create_api_response(data=describe(entity), message=f"{entity} lifecycle", request=request)
