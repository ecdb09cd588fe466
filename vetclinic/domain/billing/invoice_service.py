"""
Invoice builder

Turns a point-of-sale cart into an invoice header, its line items, the stock
decrements for product lines and (for pay-now checkouts) the payment, all in
one transaction. Either everything is written or nothing is.
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import INVOICE_DUE_DAYS
from ...models_invoice import Invoice, InvoiceLineItem, Payment
from ...shared.errors import ClinicError, NotFound, UpstreamStorageError, ValidationError
from ...shared.validators import amounts_match, generate_reference, round_money, utcnow
from ..appointments.state_machine import AppointmentStatus
from ..inventory.service import InventoryLedger
from .repository import BillingRepository
from .schemas import InvoiceCreate, LineItemCreate

logger = logging.getLogger(__name__)


class InvoiceBuilder:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BillingRepository()
        self.ledger = InventoryLedger(db)

    @staticmethod
    def _expected_total(data: InvoiceCreate) -> float:
        return round_money(data.subtotal + data.tax_amount - data.discount_amount)

    def _validate_totals(self, data: InvoiceCreate) -> None:
        for name in ("subtotal", "tax_amount", "discount_amount", "total_amount"):
            if getattr(data, name) < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)

        expected = self._expected_total(data)
        if not amounts_match(expected, data.total_amount):
            raise ValidationError(
                "total_amount must equal subtotal + tax_amount - discount_amount",
                expected=expected,
                received=data.total_amount,
            )

    @staticmethod
    def _validate_line(index: int, item: LineItemCreate) -> float:
        """Check one cart line and return its recomputed total"""
        if item.quantity <= 0:
            raise ValidationError(f"Line {index + 1}: quantity must be greater than 0", line=index)
        if item.unit_price < 0:
            raise ValidationError(f"Line {index + 1}: unit_price cannot be negative", line=index)

        if item.item_type == "service" and (not item.service_id or item.product_id):
            raise ValidationError(f"Line {index + 1}: service lines must reference a service only", line=index)
        if item.item_type == "product" and (not item.product_id or item.service_id):
            raise ValidationError(f"Line {index + 1}: product lines must reference a product only", line=index)

        line_total = round_money(item.quantity * item.unit_price)
        if item.line_total is not None and not amounts_match(item.line_total, line_total):
            raise ValidationError(
                f"Line {index + 1}: line_total does not match quantity × unit_price",
                line=index,
                expected=line_total,
                received=item.line_total,
            )
        return line_total

    def _validate(self, data: InvoiceCreate) -> list[float]:
        has_client = data.client_id is not None
        has_walk_in = bool(data.walk_in_customer_name)
        if has_client == has_walk_in:
            raise ValidationError("Provide exactly one of client_id or walk_in_customer_name")

        if not data.items:
            raise ValidationError("Cart is empty")

        self._validate_totals(data)
        line_totals = [self._validate_line(i, item) for i, item in enumerate(data.items)]

        if data.pay_now:
            if not data.payment_method:
                raise ValidationError("payment_method is required when paying now")
            if data.cash_tendered is not None:
                if data.payment_method != "cash":
                    raise ValidationError("cash_tendered only applies to cash payments")
                if data.cash_tendered + 1e-9 < self._expected_total(data):
                    raise ValidationError("Cash tendered is less than the amount due")

        if has_client and not self.repo.get_client(self.db, data.client_id):
            raise NotFound("Client", data.client_id)

        if data.appointment_id is not None:
            appointment = self.repo.get_appointment(self.db, data.appointment_id)
            if not appointment:
                raise NotFound("Appointment", data.appointment_id)
            if appointment.status != AppointmentStatus.COMPLETED.value:
                raise ValidationError(
                    "Only completed appointments can be invoiced",
                    appointment_id=data.appointment_id,
                    status=appointment.status,
                )

        service_ids = {item.service_id for item in data.items if item.item_type == "service"}
        services = self.repo.get_services(self.db, service_ids)
        missing = sorted(service_ids - services.keys())
        if missing:
            raise NotFound("Service", missing[0])

        return line_totals

    def create_invoice(self, data: InvoiceCreate, created_by: Optional[str] = None) -> Invoice:
        """
        Build and persist an invoice.

        Raises:
            ValidationError: bad customer, cart or totals
            NotFound: unknown client, appointment, service or product
            InsufficientStock: a product line exceeds stock; nothing is written
            UpstreamStorageError: the database failed; nothing is written
        """
        line_totals = self._validate(data)
        now = utcnow()

        try:
            for item in data.items:
                if item.item_type == "product":
                    self.ledger.decrement(item.product_id, item.quantity, commit=False)

            invoice = Invoice(
                invoice_number=generate_reference("INV", now),
                client_id=data.client_id,
                walk_in_customer_name=None if data.client_id is not None else data.walk_in_customer_name,
                appointment_id=data.appointment_id,
                subtotal=round_money(data.subtotal),
                tax_amount=round_money(data.tax_amount),
                discount_amount=round_money(data.discount_amount),
                # Stored from its parts so the header always adds up
                total_amount=self._expected_total(data),
                amount_paid=0,
                payment_status="open",
                notes=data.notes,
                issue_date=now,
                due_date=now + timedelta(days=INVOICE_DUE_DAYS),
            )
            self.db.add(invoice)
            self.db.flush()

            for item, line_total in zip(data.items, line_totals):
                self.db.add(
                    InvoiceLineItem(
                        invoice_id=invoice.id,
                        item_type=item.item_type,
                        service_id=item.service_id if item.item_type == "service" else None,
                        product_id=item.product_id if item.item_type == "product" else None,
                        description=item.description,
                        quantity=item.quantity,
                        unit_price=round_money(item.unit_price),
                        line_total=line_total,
                        is_taxable=item.is_taxable,
                    )
                )

            if data.pay_now:
                change = (
                    round_money(data.cash_tendered - invoice.total_amount) if data.cash_tendered is not None else None
                )
                self.db.add(
                    Payment(
                        payment_number=generate_reference("PAY", now),
                        invoice_id=invoice.id,
                        amount_paid=invoice.total_amount,
                        payment_method=data.payment_method,
                        payment_date=now,
                        transaction_reference=data.transaction_reference,
                        cash_tendered=data.cash_tendered,
                        change_given=change,
                        notes=f"Paid at checkout by {created_by}" if created_by else None,
                    )
                )
                invoice.amount_paid = invoice.total_amount
                invoice.payment_status = "paid"

            self.db.commit()
        except ClinicError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Invoice creation aborted: {e.message}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create invoice: {e}")
            raise UpstreamStorageError() from e

        invoice = self.repo.get_invoice(self.db, invoice.id)
        logger.info(
            f"✅ Invoice {invoice.invoice_number} created for {invoice.customer_name}: "
            f"{len(invoice.line_items)} line(s), total {invoice.total_amount:.2f}, status {invoice.payment_status}"
        )
        return invoice
