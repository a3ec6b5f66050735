"""CRM endpoints: companies, their contacts and sales activities."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from app.core.auth import get_current_user
from app.dependencies import get_activity_service, get_company_service, get_contact_service
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse
from app.schemas.crm import (
    ActivityCreate,
    ActivityOut,
    ActivityUpdate,
    CompanyCreate,
    CompanyOut,
    CompanyUpdate,
    ContactCreate,
    ContactOut,
    ContactUpdate,
)
from app.services.crm.crm_service import ActivityService, CompanyService, ContactService
from app.utils.responses import create_api_response

router = APIRouter()

CompanyServiceDep = Annotated[CompanyService, Depends(get_company_service)]
ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]


# Companies

@router.post(
    "/companies",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
    operation_id="create_company",
)
async def create_company(request: Request, payload: CompanyCreate, company_service: CompanyServiceDep) -> ApiResponse:
    company = await company_service.create_company(payload)
    return create_api_response(data=CompanyOut.model_validate(company), message="Company created", request=request)


@router.get("/companies", response_model=ApiResponse, summary="List companies", operation_id="list_companies")
async def list_companies(
    request: Request,
    company_service: CompanyServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    company_type: Optional[str] = Query(None, alias="companyType"),
    status_filter: Optional[str] = Query(None, alias="status"),
    assigned_user_id: Optional[str] = Query(None, alias="assignedUserId"),
    search: Optional[str] = None,
) -> ApiResponse:
    result = await company_service.list_companies(
        page=page,
        limit=limit,
        company_type=company_type,
        status=status_filter,
        assigned_user_id=assigned_user_id,
        search=search,
    )
    return create_api_response(data=result, message="Companies retrieved", request=request)


@router.get("/companies/{company_id}", response_model=ApiResponse, summary="Get a company", operation_id="get_company")
async def get_company(request: Request, company_id: UUID, company_service: CompanyServiceDep) -> ApiResponse:
    company = await company_service.get_company(company_id)
    return create_api_response(data=CompanyOut.model_validate(company), message="Company retrieved", request=request)


@router.put(
    "/companies/{company_id}", response_model=ApiResponse, summary="Update a company", operation_id="update_company"
)
async def update_company(
    request: Request, company_id: UUID, payload: CompanyUpdate, company_service: CompanyServiceDep
) -> ApiResponse:
    company = await company_service.update_company(company_id, payload)
    return create_api_response(data=CompanyOut.model_validate(company), message="Company updated", request=request)


@router.delete(
    "/companies/{company_id}",
    response_model=ApiResponse,
    summary="Deactivate a company",
    description="Companies are kept for their invoice and load history and marked INACTIVE.",
    operation_id="deactivate_company",
)
async def deactivate_company(request: Request, company_id: UUID, company_service: CompanyServiceDep) -> ApiResponse:
    company = await company_service.deactivate_company(company_id)
    return create_api_response(data=CompanyOut.model_validate(company), message="Company deactivated", request=request)


# Contacts

@router.post(
    "/companies/{company_id}/contacts",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a contact",
    operation_id="create_contact",
)
async def create_contact(
    request: Request, company_id: UUID, payload: ContactCreate, contact_service: ContactServiceDep
) -> ApiResponse:
    contact = await contact_service.create_contact(company_id, payload)
    return create_api_response(data=ContactOut.model_validate(contact), message="Contact created", request=request)


@router.get(
    "/companies/{company_id}/contacts",
    response_model=ApiResponse,
    summary="List a company's contacts",
    operation_id="list_contacts",
)
async def list_contacts(request: Request, company_id: UUID, contact_service: ContactServiceDep) -> ApiResponse:
    contacts = await contact_service.list_contacts(company_id)
    return create_api_response(
        data=[ContactOut.model_validate(c) for c in contacts], message="Contacts retrieved", request=request
    )


@router.get(
    "/companies/{company_id}/contacts/{contact_id}",
    response_model=ApiResponse,
    summary="Get a contact",
    operation_id="get_contact",
)
async def get_contact(
    request: Request, company_id: UUID, contact_id: UUID, contact_service: ContactServiceDep
) -> ApiResponse:
    contact = await contact_service.get_contact(company_id, contact_id)
    return create_api_response(data=ContactOut.model_validate(contact), message="Contact retrieved", request=request)


@router.put(
    "/companies/{company_id}/contacts/{contact_id}",
    response_model=ApiResponse,
    summary="Update a contact",
    operation_id="update_contact",
)
async def update_contact(
    request: Request,
    company_id: UUID,
    contact_id: UUID,
    payload: ContactUpdate,
    contact_service: ContactServiceDep,
) -> ApiResponse:
    contact = await contact_service.update_contact(company_id, contact_id, payload)
    return create_api_response(data=ContactOut.model_validate(contact), message="Contact updated", request=request)


@router.delete(
    "/companies/{company_id}/contacts/{contact_id}",
    response_model=ApiResponse,
    summary="Delete a contact",
    operation_id="delete_contact",
)
async def delete_contact(
    request: Request, company_id: UUID, contact_id: UUID, contact_service: ContactServiceDep
) -> ApiResponse:
    await contact_service.delete_contact(company_id, contact_id)
    return create_api_response(data=None, message="Contact deleted", request=request)


# Activities

@router.post(
    "/activities",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log an activity",
    operation_id="create_activity",
)
async def create_activity(
    request: Request,
    payload: ActivityCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    activity_service: ActivityServiceDep,
) -> ApiResponse:
    activity = await activity_service.create_activity(payload, user_id=current_user.id)
    return create_api_response(data=ActivityOut.model_validate(activity), message="Activity logged", request=request)


@router.get("/activities", response_model=ApiResponse, summary="List activities", operation_id="list_activities")
async def list_activities(
    request: Request,
    activity_service: ActivityServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    company_id: Optional[UUID] = Query(None, alias="companyId"),
    contact_id: Optional[UUID] = Query(None, alias="contactId"),
    activity_type: Optional[str] = Query(None, alias="activityType"),
    status_filter: Optional[str] = Query(None, alias="status"),
    owner_id: Optional[str] = Query(None, alias="ownerId"),
) -> ApiResponse:
    result = await activity_service.list_activities(
        page=page,
        limit=limit,
        company_id=company_id,
        contact_id=contact_id,
        activity_type=activity_type,
        status=status_filter,
        owner_id=owner_id,
    )
    return create_api_response(data=result, message="Activities retrieved", request=request)


@router.get(
    "/activities/{activity_id}", response_model=ApiResponse, summary="Get an activity", operation_id="get_activity"
)
async def get_activity(request: Request, activity_id: UUID, activity_service: ActivityServiceDep) -> ApiResponse:
    activity = await activity_service.get_activity(activity_id)
    return create_api_response(data=ActivityOut.model_validate(activity), message="Activity retrieved", request=request)


@router.put(
    "/activities/{activity_id}",
    response_model=ApiResponse,
    summary="Update an activity",
    operation_id="update_activity",
)
async def update_activity(
    request: Request, activity_id: UUID, payload: ActivityUpdate, activity_service: ActivityServiceDep
) -> ApiResponse:
    activity = await activity_service.update_activity(activity_id, payload)
    return create_api_response(data=ActivityOut.model_validate(activity), message="Activity updated", request=request)


@router.post(
    "/activities/{activity_id}/complete",
    response_model=ApiResponse,
    summary="Complete an activity",
    operation_id="complete_activity",
)
async def complete_activity(request: Request, activity_id: UUID, activity_service: ActivityServiceDep) -> ApiResponse:
    activity = await activity_service.complete_activity(activity_id)
    return create_api_response(data=ActivityOut.model_validate(activity), message="Activity completed", request=request)


@router.delete(
    "/activities/{activity_id}",
    response_model=ApiResponse,
    summary="Delete an activity",
    operation_id="delete_activity",
)
async def delete_activity(request: Request, activity_id: UUID, activity_service: ActivityServiceDep) -> ApiResponse:
    await activity_service.delete_activity(activity_id)
    return create_api_response(data=None, message="Activity deleted", request=request)
