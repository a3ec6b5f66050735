"""Customer invoice endpoints: billing, receivables aging and statements."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse

from app.core.auth import require_accounting
from app.dependencies import get_invoice_service
from app.schemas.accounting import GenerateFromLoadRequest, InvoiceCreate, InvoiceOut, InvoiceUpdate, VoidRequest
from app.schemas.common import ApiResponse
from app.services.accounting.invoice_service import InvoiceService
from app.utils.responses import create_api_response

router = APIRouter()

InvoiceServiceDep = Annotated[InvoiceService, Depends(get_invoice_service)]
ACCOUNTING = [Depends(require_accounting)]


def _pdf_response(pdf, filename: str) -> StreamingResponse:
    return StreamingResponse(
        pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an invoice",
    operation_id="create_invoice",
    dependencies=ACCOUNTING,
)
async def create_invoice(request: Request, payload: InvoiceCreate, invoice_service: InvoiceServiceDep) -> ApiResponse:
    invoice = await invoice_service.create_invoice(payload)
    return create_api_response(
        data=InvoiceOut.model_validate(invoice), message=f"Invoice {invoice.invoice_number} created", request=request
    )


@router.post(
    "/from-load",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invoice a delivered load",
    description="Bills the customer rate and accessorials of a delivered load and marks its order INVOICED.",
    operation_id="generate_invoice_from_load",
    dependencies=ACCOUNTING,
)
async def generate_from_load(
    request: Request, payload: GenerateFromLoadRequest, invoice_service: InvoiceServiceDep
) -> ApiResponse:
    invoice = await invoice_service.generate_from_load(payload.load_id, payment_terms=payload.payment_terms)
    return create_api_response(
        data=InvoiceOut.model_validate(invoice), message=f"Invoice {invoice.invoice_number} created", request=request
    )


@router.get("", response_model=ApiResponse, summary="List invoices", operation_id="list_invoices")
async def list_invoices(
    request: Request,
    invoice_service: InvoiceServiceDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    company_id: Optional[UUID] = Query(None, alias="companyId"),
    load_id: Optional[UUID] = Query(None, alias="loadId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
) -> ApiResponse:
    result = await invoice_service.list_invoices(
        page=page,
        limit=limit,
        status=status_filter,
        company_id=company_id,
        load_id=load_id,
        date_from=date_from,
        date_to=date_to,
    )
    return create_api_response(data=result, message="Invoices retrieved", request=request)


@router.get(
    "/aging",
    response_model=ApiResponse,
    summary="Receivables aging",
    description="Open balances bucketed by days past due: current, 1-30, 31-60, 61-90 and 90+.",
    operation_id="get_invoice_aging",
)
async def aging_report(
    request: Request,
    invoice_service: InvoiceServiceDep,
    as_of: Optional[date] = Query(None, alias="asOf"),
    company_id: Optional[UUID] = Query(None, alias="companyId"),
) -> ApiResponse:
    report = await invoice_service.aging_report(as_of=as_of, company_id=company_id)
    return create_api_response(data=report, message="Aging report generated", request=request)


@router.get(
    "/statements/{company_id}",
    response_model=ApiResponse,
    summary="Customer statement",
    operation_id="get_customer_statement",
)
async def customer_statement(
    request: Request,
    company_id: UUID,
    invoice_service: InvoiceServiceDep,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
) -> ApiResponse:
    statement = await invoice_service.customer_statement(company_id, start_date=start_date, end_date=end_date)
    return create_api_response(data=statement, message="Statement generated", request=request)


@router.get(
    "/statements/{company_id}/pdf",
    summary="Customer statement PDF",
    operation_id="get_customer_statement_pdf",
    response_class=StreamingResponse,
)
async def customer_statement_pdf(
    company_id: UUID,
    invoice_service: InvoiceServiceDep,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
) -> StreamingResponse:
    pdf = await invoice_service.statement_pdf(company_id, start_date=start_date, end_date=end_date)
    return _pdf_response(pdf, f"statement-{company_id}.pdf")


@router.get("/{invoice_id}", response_model=ApiResponse, summary="Get an invoice", operation_id="get_invoice")
async def get_invoice(request: Request, invoice_id: UUID, invoice_service: InvoiceServiceDep) -> ApiResponse:
    invoice = await invoice_service.get_invoice(invoice_id)
    return create_api_response(data=InvoiceOut.model_validate(invoice), message="Invoice retrieved", request=request)


@router.put(
    "/{invoice_id}",
    response_model=ApiResponse,
    summary="Update a draft invoice",
    operation_id="update_invoice",
    dependencies=ACCOUNTING,
)
async def update_invoice(
    request: Request, invoice_id: UUID, payload: InvoiceUpdate, invoice_service: InvoiceServiceDep
) -> ApiResponse:
    invoice = await invoice_service.update_invoice(invoice_id, payload)
    return create_api_response(data=InvoiceOut.model_validate(invoice), message="Invoice updated", request=request)


@router.post(
    "/{invoice_id}/send",
    response_model=ApiResponse,
    summary="Send an invoice",
    operation_id="send_invoice",
    dependencies=ACCOUNTING,
)
async def send_invoice(request: Request, invoice_id: UUID, invoice_service: InvoiceServiceDep) -> ApiResponse:
    invoice = await invoice_service.send_invoice(invoice_id)
    return create_api_response(data=InvoiceOut.model_validate(invoice), message="Invoice sent", request=request)


@router.post(
    "/{invoice_id}/viewed",
    response_model=ApiResponse,
    summary="Mark an invoice viewed",
    operation_id="mark_invoice_viewed",
)
async def mark_viewed(request: Request, invoice_id: UUID, invoice_service: InvoiceServiceDep) -> ApiResponse:
    invoice = await invoice_service.mark_viewed(invoice_id)
    return create_api_response(data=InvoiceOut.model_validate(invoice), message="Invoice marked viewed", request=request)


@router.post(
    "/{invoice_id}/void",
    response_model=ApiResponse,
    summary="Void an invoice",
    description="Only invoices with no payments applied can be voided.",
    operation_id="void_invoice",
    dependencies=ACCOUNTING,
)
async def void_invoice(
    request: Request, invoice_id: UUID, payload: VoidRequest, invoice_service: InvoiceServiceDep
) -> ApiResponse:
    invoice = await invoice_service.void_invoice(invoice_id, payload.reason)
    return create_api_response(data=InvoiceOut.model_validate(invoice), message="Invoice voided", request=request)


@router.get(
    "/{invoice_id}/pdf",
    summary="Invoice PDF",
    operation_id="get_invoice_pdf",
    response_class=StreamingResponse,
)
async def invoice_pdf(invoice_id: UUID, invoice_service: InvoiceServiceDep) -> StreamingResponse:
    invoice = await invoice_service.get_invoice(invoice_id)
    pdf = await invoice_service.invoice_pdf(invoice_id)
    return _pdf_response(pdf, f"{invoice.invoice_number}.pdf")
