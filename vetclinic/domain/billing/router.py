"""Billing router - Point of sale, payments and receipts"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import Caller, Role, get_current_caller, require_staff
from ...database import get_db
from .invoice_service import InvoiceBuilder
from .payment_service import PaymentReconciler
from .schemas import (
    ClientReceipts,
    InvoiceCreate,
    InvoiceResponse,
    PaymentApplied,
    PaymentCreate,
    PaymentListEntry,
    PaymentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_invoice_builder(db: Session = Depends(get_db)) -> InvoiceBuilder:
    """Dependency injection for InvoiceBuilder"""
    return InvoiceBuilder(db)


def get_payment_reconciler(db: Session = Depends(get_db)) -> PaymentReconciler:
    """Dependency injection for PaymentReconciler"""
    return PaymentReconciler(db)


@router.post("/invoices", response_model=InvoiceResponse, status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    caller: Caller = Depends(require_staff),
    builder: InvoiceBuilder = Depends(get_invoice_builder),
):
    """Create an invoice from a point-of-sale cart"""
    return builder.create_invoice(data, created_by=caller.subject)


@router.post("/invoices/{invoice_id}/payments", response_model=PaymentApplied, status_code=201)
async def apply_payment(
    invoice_id: int,
    data: PaymentCreate,
    caller: Caller = Depends(require_staff),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
):
    applied = reconciler.apply_payment(invoice_id, data, recorded_by=caller.subject)
    invoice = applied.invoice
    return PaymentApplied(
        payment=PaymentResponse.model_validate(applied.payment),
        invoice_id=invoice.id,
        invoice_number=invoice.invoice_number,
        total_amount=invoice.total_amount,
        amount_paid=invoice.amount_paid,
        balance_due=applied.balance_due,
        overpaid_amount=invoice.overpaid_amount,
        payment_status=invoice.payment_status,
    )


@router.get("/payments", response_model=list[PaymentListEntry])
async def list_payments(
    limit: int = Query(100, ge=1, le=500),
    caller: Caller = Depends(require_staff),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
):
    """Recent payments, newest first"""
    return [
        PaymentListEntry(
            id=p.id,
            payment_number=p.payment_number,
            invoice_id=p.invoice_id,
            invoice_number=p.invoice.invoice_number,
            customer_name=p.invoice.customer_name,
            amount_paid=p.amount_paid,
            payment_method=p.payment_method,
            payment_date=p.payment_date,
            transaction_reference=p.transaction_reference,
        )
        for p in reconciler.list_payments(limit)
    ]


@router.get("/clients/{client_id}/receipts", response_model=ClientReceipts)
async def get_client_receipts(
    client_id: int,
    caller: Caller = Depends(get_current_caller),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
):
    """Invoices and payments for one client. Clients can only see their own."""
    if caller.role == Role.CLIENT and caller.profile_id != client_id:
        logger.warning(f"⚠️ Client {caller.subject} tried to read receipts of client {client_id}")
        raise HTTPException(status_code=403, detail="Not authorized")

    client, invoices, total_spent = reconciler.get_client_receipts(client_id)
    return ClientReceipts(
        client_id=client.id,
        client_name=client.full_name,
        invoices=[InvoiceResponse.model_validate(invoice) for invoice in invoices],
        total_spent=total_spent,
    )
