"""Endpoint tests with the service layer replaced by mocks."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from app.core.exceptions import InvalidStateTransitionError, NotFoundError
from app.dependencies import (
    get_load_service,
    get_maintenance_service,
    get_settlement_service,
    get_tracking_service,
)
from app.schemas.dispatch import TrackingResponse
from app.services.operations.maintenance_service import MaintenanceService


def test_list_loads_returns_page_envelope(test_client, auth_headers):
    service = MagicMock()
    service.list_loads = AsyncMock(
        return_value={"data": [], "total": 0, "page": 2, "limit": 10, "totalPages": 0}
    )
    test_client.app.dependency_overrides[get_load_service] = lambda: service

    response = test_client.get(
        "/api/v1/loads", params={"page": 2, "limit": 10, "status": "DISPATCHED"}, headers=auth_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] is True
    assert body["data"]["page"] == 2
    assert body["data"]["totalPages"] == 0
    assert service.list_loads.await_args.kwargs["status"] == "DISPATCHED"


def test_invalid_transition_maps_to_conflict(test_client, auth_headers):
    service = MagicMock()
    service.update_status = AsyncMock(side_effect=InvalidStateTransitionError("load", "UNASSIGNED", "DELIVERED"))
    test_client.app.dependency_overrides[get_load_service] = lambda: service

    response = test_client.patch(
        f"/api/v1/loads/{uuid4()}/status", json={"status": "DELIVERED"}, headers=auth_headers
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["title"] == "Invalid State Transition"
    assert detail["detail"] == "Cannot transition load from UNASSIGNED to DELIVERED"


def test_unknown_status_value_is_rejected(test_client, auth_headers):
    test_client.app.dependency_overrides[get_load_service] = lambda: MagicMock()

    response = test_client.patch(
        f"/api/v1/loads/{uuid4()}/status", json={"status": "TELEPORTED"}, headers=auth_headers
    )

    assert response.status_code == 422


def test_missing_load_maps_to_not_found(test_client, auth_headers):
    load_id = uuid4()
    service = MagicMock()
    service.get_load = AsyncMock(side_effect=NotFoundError("Load", load_id))
    test_client.app.dependency_overrides[get_load_service] = lambda: service

    response = test_client.get(f"/api/v1/loads/{load_id}", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"]["detail"] == f"Load {load_id} not found"


def test_settlement_approval_requires_accounting_role(test_client, auth_headers):
    service = MagicMock()
    service.approve = AsyncMock()
    test_client.app.dependency_overrides[get_settlement_service] = lambda: service

    response = test_client.post(f"/api/v1/accounting/settlements/{uuid4()}/approve", headers=auth_headers)

    assert response.status_code == 403
    service.approve.assert_not_awaited()


def test_public_tracking_needs_no_token(test_client):
    service = MagicMock()
    service.track = AsyncMock(
        return_value=TrackingResponse(load_number="LD2024060001", status="IN_TRANSIT", progress_percent=60)
    )
    test_client.app.dependency_overrides[get_tracking_service] = lambda: service

    response = test_client.get("/api/v1/tracking/ABCDEFGHJK")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["loadNumber"] == "LD2024060001"
    assert data["progressPercent"] == 60
    service.track.assert_awaited_once_with("ABCDEFGHJK")


def test_admin_runs_single_sweep(test_client, admin_headers):
    service = MagicMock()
    service.expire_bids = AsyncMock(return_value=4)
    test_client.app.dependency_overrides[get_maintenance_service] = lambda: service

    response = test_client.post("/api/v1/admin/maintenance/expire_bids", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {"expire_bids": 4}


def test_admin_unknown_sweep(test_client, admin_headers):
    test_client.app.dependency_overrides[get_maintenance_service] = lambda: MagicMock()

    response = test_client.post("/api/v1/admin/maintenance/vacuum", headers=admin_headers)

    assert response.status_code == 404
    assert "expire_postings" in response.json()["detail"]["detail"]


def test_admin_run_all(test_client, admin_headers):
    service = MagicMock()
    service.run_all = AsyncMock(return_value={sweep: 0 for sweep in MaintenanceService.SWEEPS})
    test_client.app.dependency_overrides[get_maintenance_service] = lambda: service

    response = test_client.post("/api/v1/admin/maintenance/run", headers=admin_headers)

    assert response.status_code == 200
    assert set(response.json()["data"]) == set(MaintenanceService.SWEEPS)


def test_null_rate_on_load_update_is_rejected(test_client, auth_headers):
    service = MagicMock()
    service.update_load = AsyncMock()
    test_client.app.dependency_overrides[get_load_service] = lambda: service

    response = test_client.put(
        f"/api/v1/loads/{uuid4()}", json={"customerRateCents": None}, headers=auth_headers
    )

    assert response.status_code == 422
    service.update_load.assert_not_awaited()
