"""Payment reconciler - Apply payments and keep invoice status consistent"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Client
from ...models_invoice import Invoice, Payment
from ...shared.errors import ClinicError, NotFound, UpstreamStorageError, ValidationError
from ...shared.validators import generate_reference, round_money, to_cents, utcnow
from .repository import BillingRepository
from .schemas import PaymentCreate

logger = logging.getLogger(__name__)


def derive_payment_status(amount_paid: float, total_amount: float) -> str:
    """open when nothing is paid, partial while a balance remains, paid otherwise"""
    paid_cents = to_cents(amount_paid)
    if paid_cents <= 0:
        return "open"
    if paid_cents >= to_cents(total_amount):
        return "paid"
    return "partial"


@dataclass
class AppliedPayment:
    payment: Payment
    invoice: Invoice

    @property
    def balance_due(self) -> float:
        return round_money(max(0.0, self.invoice.total_amount - self.invoice.amount_paid))


class PaymentReconciler:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()

    def apply_payment(self, invoice_id: int, data: PaymentCreate, recorded_by: Optional[str] = None) -> AppliedPayment:
        """
        Record a payment against an invoice.

        The invoice row is locked for the read-modify-write of amount_paid, so
        two concurrent payments both land. Overpayment is accepted and
        reported through Invoice.overpaid_amount.
        """
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Payment amount must be greater than 0")

        amount = round_money(data.amount)
        change = None
        if data.cash_tendered is not None:
            if data.payment_method != "cash":
                raise ValidationError("cash_tendered only applies to cash payments")
            if data.cash_tendered + 1e-9 < amount:
                raise ValidationError("Cash tendered is less than the payment amount")
            change = round_money(data.cash_tendered - amount)

        try:
            invoice = self.repo.lock_invoice(self.db, invoice_id)
            if not invoice:
                raise NotFound("Invoice", invoice_id)

            now = utcnow()
            payment = Payment(
                payment_number=generate_reference("PAY", now),
                invoice_id=invoice.id,
                amount_paid=amount,
                payment_method=data.payment_method,
                payment_date=now,
                transaction_reference=data.transaction_reference,
                cash_tendered=data.cash_tendered,
                change_given=change,
                notes=data.notes,
            )
            self.db.add(payment)

            invoice.amount_paid = round_money((invoice.amount_paid or 0) + amount)
            invoice.payment_status = derive_payment_status(invoice.amount_paid, invoice.total_amount)
            invoice.updated_at = now

            self.db.commit()
            self.db.refresh(invoice)
            self.db.refresh(payment)
        except ClinicError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to apply payment to invoice {invoice_id}: {e}")
            raise UpstreamStorageError() from e

        if invoice.overpaid_amount > 0:
            logger.warning(
                f"⚠️ Invoice {invoice.invoice_number} overpaid by {invoice.overpaid_amount:.2f} "
                f"(paid {invoice.amount_paid:.2f} of {invoice.total_amount:.2f})"
            )
        logger.info(
            f"💰 Payment {payment.payment_number} of {amount:.2f} applied to invoice "
            f"{invoice.invoice_number} by {recorded_by or 'system'}; status {invoice.payment_status}"
        )
        return AppliedPayment(payment=payment, invoice=invoice)

    def list_payments(self, limit: int = 100) -> list[Payment]:
        return self.repo.list_payments(self.db, limit)

    def get_client_receipts(self, client_id: int) -> tuple[Client, list[Invoice], float]:
        """A client's invoices, newest first, and the sum of their totals"""
        client = self.repo.get_client(self.db, client_id)
        if not client:
            raise NotFound("Client", client_id)

        invoices = self.repo.get_client_invoices(self.db, client_id)
        total_spent = round_money(sum(invoice.total_amount or 0 for invoice in invoices))
        return client, invoices, total_spent
