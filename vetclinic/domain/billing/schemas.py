"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

PAYMENT_METHODS = {"cash", "credit_card", "debit_card", "gcash", "online", "insurance", "check"}
LINE_ITEM_TYPES = {"service", "product"}


def _check_payment_method(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in PAYMENT_METHODS:
        raise ValueError(f"payment_method must be one of: {', '.join(sorted(PAYMENT_METHODS))}")
    return v


class LineItemCreate(BaseModel):
    item_type: str
    service_id: Optional[int] = None
    product_id: Optional[int] = None
    description: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: Optional[float] = None  # Optional; recomputed and checked
    is_taxable: bool = True

    @field_validator("item_type")
    @classmethod
    def validate_item_type(cls, v: str) -> str:
        if v not in LINE_ITEM_TYPES:
            raise ValueError("item_type must be 'service' or 'product'")
        return v


class InvoiceCreate(BaseModel):
    """Point-of-sale checkout: a cart plus caller-computed totals"""

    client_id: Optional[int] = None
    walk_in_customer_name: Optional[str] = None
    appointment_id: Optional[int] = None
    items: list[LineItemCreate] = []
    subtotal: float
    tax_amount: float = 0
    discount_amount: float = 0
    total_amount: float
    notes: Optional[str] = None

    # Settle immediately at the counter
    pay_now: bool = False
    payment_method: Optional[str] = None
    cash_tendered: Optional[float] = None
    transaction_reference: Optional[str] = None

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v: Optional[str]) -> Optional[str]:
        return _check_payment_method(v)

    @field_validator("walk_in_customer_name")
    @classmethod
    def blank_name_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class PaymentCreate(BaseModel):
    amount: float
    payment_method: str
    cash_tendered: Optional[float] = None
    transaction_reference: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("payment_method")
    @classmethod
    def validate_payment_method(cls, v: str) -> str:
        return _check_payment_method(v)


class LineItemResponse(BaseModel):
    id: int
    item_type: str
    service_id: Optional[int]
    product_id: Optional[int]
    description: Optional[str]
    quantity: int
    unit_price: float
    line_total: float
    is_taxable: bool

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: int
    payment_number: str
    invoice_id: int
    amount_paid: float
    payment_method: str
    payment_date: Optional[datetime]
    transaction_reference: Optional[str]
    cash_tendered: Optional[float]
    change_given: Optional[float]
    notes: Optional[str]

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    client_id: Optional[int]
    walk_in_customer_name: Optional[str]
    customer_name: str
    appointment_id: Optional[int]
    subtotal: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    amount_paid: float
    overpaid_amount: float
    payment_status: str
    notes: Optional[str]
    issue_date: Optional[datetime]
    due_date: Optional[datetime]
    line_items: list[LineItemResponse] = []
    payments: list[PaymentResponse] = []

    class Config:
        from_attributes = True


class PaymentApplied(BaseModel):
    """Result of applying a payment to an invoice"""

    payment: PaymentResponse
    invoice_id: int
    invoice_number: str
    total_amount: float
    amount_paid: float
    balance_due: float
    overpaid_amount: float
    payment_status: str


class PaymentListEntry(BaseModel):
    id: int
    payment_number: str
    invoice_id: int
    invoice_number: str
    customer_name: str
    amount_paid: float
    payment_method: str
    payment_date: Optional[datetime]
    transaction_reference: Optional[str]


class ClientReceipts(BaseModel):
    client_id: int
    client_name: str
    invoices: list[InvoiceResponse]
    total_spent: float
