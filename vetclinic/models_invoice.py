"""
Catalog, Invoice and Payment Models for Clinic Billing
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Product(Base):
    """Dispensable stock item (medication, food, accessories)"""

    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),)

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), unique=True, nullable=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False, default=0)
    # Only ever changed through the inventory ledger's conditional decrement
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Service(Base):
    """Billable clinical service (consultation, vaccination, grooming...)"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())


class Invoice(Base):
    """Invoice header for a completed visit or a walk-in sale"""

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint(
            "(client_id IS NULL) <> (walk_in_customer_name IS NULL)",
            name="ck_invoices_single_customer",
        ),
        CheckConstraint("amount_paid >= 0", name="ck_invoices_amount_paid_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False, index=True)

    # Exactly one customer reference
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    walk_in_customer_name = Column(String(255), nullable=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)

    # Pricing (pre-computed by the caller; total validated on creation)
    subtotal = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    discount_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False)

    # Payment tracking
    amount_paid = Column(Float, nullable=False, default=0)
    payment_status = Column(String(20), default="open", nullable=False, index=True)  # open, partial, paid

    notes = Column(Text, nullable=True)

    # Dates
    issue_date = Column(DateTime, server_default=func.now())
    due_date = Column(DateTime, nullable=True)

    # Audit
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Client", back_populates="invoices")
    line_items = relationship(
        "InvoiceLineItem", back_populates="invoice", order_by="InvoiceLineItem.id"
    )
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.id")

    @property
    def customer_name(self) -> str:
        if self.walk_in_customer_name:
            return self.walk_in_customer_name
        return self.client.full_name if self.client else "Unknown"

    @property
    def overpaid_amount(self) -> float:
        return round(max(0.0, (self.amount_paid or 0) - (self.total_amount or 0)), 2)


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
        CheckConstraint(
            "(item_type = 'service' AND service_id IS NOT NULL AND product_id IS NULL)"
            " OR (item_type = 'product' AND product_id IS NOT NULL AND service_id IS NULL)",
            name="ck_line_items_reference_matches_type",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    item_type = Column(String(20), nullable=False)  # service, product
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)

    description = Column(String(255), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    line_total = Column(Float, nullable=False)
    is_taxable = Column(Boolean, default=True, nullable=False)

    invoice = relationship("Invoice", back_populates="line_items")


class Payment(Base):
    """A single payment applied against an invoice"""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_number = Column(String(50), unique=True, nullable=False, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)

    amount_paid = Column(Float, nullable=False)
    # cash, credit_card, debit_card, gcash, online, insurance, check
    payment_method = Column(String(50), nullable=False)
    payment_date = Column(DateTime, server_default=func.now())
    transaction_reference = Column(String(255), nullable=True)

    # Cash drawer bookkeeping (POS)
    cash_tendered = Column(Float, nullable=True)
    change_given = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    invoice = relationship("Invoice", back_populates="payments")
