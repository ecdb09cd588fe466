"""Billing repository - Database operations for invoices and payments"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from ...models import Appointment, Client
from ...models_invoice import Invoice, Payment, Service


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_client(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_services(db: Session, service_ids: set[int]) -> dict[int, Service]:
        if not service_ids:
            return {}
        services = db.query(Service).filter(Service.id.in_(service_ids)).all()
        return {s.id: s for s in services}

    @staticmethod
    def get_invoice(db: Session, invoice_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .options(selectinload(Invoice.line_items), selectinload(Invoice.payments))
            .filter(Invoice.id == invoice_id)
            .first()
        )

    @staticmethod
    def lock_invoice(db: Session, invoice_id: int) -> Optional[Invoice]:
        """SELECT ... FOR UPDATE on the invoice row (no-op on SQLite)"""
        return db.query(Invoice).filter(Invoice.id == invoice_id).with_for_update().first()

    @staticmethod
    def get_client_invoices(db: Session, client_id: int) -> list[Invoice]:
        return (
            db.query(Invoice)
            .options(selectinload(Invoice.line_items), selectinload(Invoice.payments))
            .filter(Invoice.client_id == client_id)
            .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
            .all()
        )

    @staticmethod
    def list_payments(db: Session, limit: int = 100) -> list[Payment]:
        return (
            db.query(Payment)
            .options(joinedload(Payment.invoice).joinedload(Invoice.client))
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .limit(limit)
            .all()
        )
