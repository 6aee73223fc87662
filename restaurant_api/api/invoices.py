"""
Invoice Endpoints

Invoicing an order closes it for edits (status `invoiced`) and queues the
invoice for export to the accounting spreadsheet.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_api.api.deps import (
    get_current_user,
    get_or_404,
    check_user_type,
    match_user_type_to_uid,
    ensure_matching_id,
    apply_updates,
)
from restaurant_api.core.config import get_settings
from restaurant_api.core.security import TokenClaims
from restaurant_api.database import get_db
from restaurant_api.models import Invoice, Order, OrderStatus, PaymentStatus, UserType
from restaurant_api.schemas import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceResponse,
    InvoicePage,
    NextIdResponse,
    MessageResponse,
)
from restaurant_api.services.identifiers import next_sequential_id, insert_with_sequential_id
from restaurant_api.services.pagination import (
    PaginationParams,
    get_pagination_params,
    build_pagination,
)
from restaurant_api.tasks import export_invoice_to_excel

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invoices"], dependencies=[Depends(get_current_user)])

INVOICE_PREFIX = "invoice"


def _export_payload(invoice: Invoice, order: Order) -> dict[str, Any]:
    return {
        "invoice_id": invoice.invoice_id,
        "order_id": invoice.order_id,
        "table_id": order.table_id,
        "created_at": invoice.created_at.isoformat() if invoice.created_at else None,
        "payment_method": invoice.payment_method,
        "payment_status": invoice.payment_status,
        "payment_due_date": invoice.payment_due_date.isoformat(),
        "total_amount": invoice.total_amount,
    }


@router.get("/invoices", response_model=InvoicePage)
async def list_invoices(
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InvoicePage:
    check_user_type(current_user, UserType.ADMIN.value, "Unauthorized to access this resource")

    total_result = await db.execute(select(func.count(Invoice.id)))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Invoice).order_by(Invoice.id.desc()).offset(pagination.offset).limit(pagination.limit)
    )

    return InvoicePage(
        data=[InvoiceResponse.model_validate(i) for i in result.scalars().all()],
        pagination=build_pagination(pagination.page, pagination.limit, total),
    )


@router.get("/user-invoices", response_model=List[InvoiceResponse])
async def list_user_invoices(
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[InvoiceResponse]:
    """Invoices for every order the caller has placed."""
    result = await db.execute(
        select(Invoice)
        .join(Order, Order.order_id == Invoice.order_id)
        .where(Order.user_id == current_user.uid)
        .order_by(Invoice.id.desc())
    )
    return [InvoiceResponse.model_validate(i) for i in result.scalars().all()]


@router.get("/invoices/next-id", response_model=NextIdResponse)
async def get_next_invoice_id(db: AsyncSession = Depends(get_db)) -> NextIdResponse:
    return NextIdResponse(next_id=await next_sequential_id(db, Invoice.invoice_id, INVOICE_PREFIX))


@router.get("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    invoice = await get_or_404(db, Invoice.invoice_id, invoice_id, "invoice not found")
    order = await get_or_404(db, Order.order_id, invoice.order_id, "order not found")
    match_user_type_to_uid(current_user, order.user_id, "Unauthorized to access this invoice")
    return InvoiceResponse.model_validate(invoice)


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    payload: InvoiceCreate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    """
    Invoice an order.

    Missing fields are filled in from the order: the amount defaults to the
    order total and the due date to `invoice_due_days` from now.
    """
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can create invoices")

    result = await db.execute(select(Order).where(Order.order_id == payload.order_id))
    order = result.scalar_one_or_none()
    if order is None:
        raise HTTPException(status_code=400, detail="The order referenced does not exist")

    status = payload.payment_status or PaymentStatus.PENDING
    due_date = payload.payment_due_date or (
        datetime.now(timezone.utc) + timedelta(days=settings.invoice_due_days)
    )
    amount = payload.total_amount if payload.total_amount else order.order_total

    invoice = Invoice(
        invoice_id=payload.invoice_id,
        order_id=order.order_id,
        payment_method=payload.payment_method,
        payment_status=status.value,
        payment_due_date=due_date,
        total_amount=round(amount, 2),
    )
    invoice = await insert_with_sequential_id(db, invoice, "invoice_id", INVOICE_PREFIX)

    order.order_status = OrderStatus.INVOICED.value
    await db.commit()
    await db.refresh(order)

    logger.info(f"Invoice {invoice.invoice_id} created for {order.order_id}: ${invoice.total_amount:.2f}")

    try:
        export_invoice_to_excel.delay(_export_payload(invoice, order))
        logger.info(f"Queued Excel export for Invoice {invoice.invoice_id}")
    except Exception as e:
        logger.error(f"Failed to queue Excel export for Invoice {invoice.invoice_id}: {e}")

    return InvoiceResponse.model_validate(invoice)


@router.patch("/invoices/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can update invoices")
    ensure_matching_id(payload.invoice_id, invoice_id, "invoice")

    invoice = await get_or_404(db, Invoice.invoice_id, invoice_id, "invoice not found")
    updates = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"invoice_id"})
    if "payment_status" in updates:
        updates["payment_status"] = updates["payment_status"].value
    if "total_amount" in updates:
        updates["total_amount"] = round(updates["total_amount"], 2)

    apply_updates(invoice, updates)
    await db.commit()
    await db.refresh(invoice)

    logger.info(f"Invoice {invoice_id} updated (status={invoice.payment_status})")
    return InvoiceResponse.model_validate(invoice)


@router.delete("/invoices/{invoice_id}", response_model=MessageResponse)
async def delete_invoice(
    invoice_id: str,
    current_user: TokenClaims = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    check_user_type(current_user, UserType.ADMIN.value, "Only admins can delete invoices")
    invoice = await get_or_404(db, Invoice.invoice_id, invoice_id, "invoice not found")

    if invoice.payment_status == PaymentStatus.PAID.value:
        raise HTTPException(status_code=400, detail="Cannot delete an invoice that has been paid")

    await db.delete(invoice)
    await db.commit()

    logger.info(f"Invoice {invoice_id} deleted")
    return MessageResponse(message="Invoice deleted successfully")
