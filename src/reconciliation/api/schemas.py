"""Pydantic request/response schemas for the reconciliation API.

These are the console's external contract, kept separate from the internal
Protean commands and the Order aggregate.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class BankDetailsSchema(BaseModel):
    account_holder_name: str
    account_number: str
    routing_number: str
    bank_name: str
    account_type: Literal["checking", "savings"] = "checking"


class OrderItemSchema(BaseModel):
    product_id: str | None = None
    title: str
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    line_subtotal: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class RegisterOrderRequest(BaseModel):
    order_number: str
    payment_method: str
    total: float
    items: list[OrderItemSchema] = []
    subtotal: float | None = None
    discount: float = 0.0
    shipping_charges: float = 0.0
    currency: str = "USD"
    customer_name: str | None = None
    customer_email: str | None = None
    status: str = "pending"
    payment_status: str = "pending"
    paid_at: datetime | None = None
    stripe_payment_intent_id: str | None = None
    created_at: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_number": "ORD-1001",
                    "payment_method": "stripe",
                    "payment_status": "completed",
                    "stripe_payment_intent_id": "pi_123",
                    "customer_name": "Jane Doe",
                    "customer_email": "jane@example.com",
                    "items": [{"product_id": "prod-1", "title": "Rose Serum", "quantity": 2, "unit_price": 50.0}],
                    "total": 100.0,
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    cancelled_by: str | None = None


class RequestReturnRequest(BaseModel):
    reason: str
    bank_details: BankDetailsSchema | None = None


class ApproveReturnRequest(BaseModel):
    notes: str | None = None
    refund_amount: float | None = None


class RejectReturnRequest(BaseModel):
    notes: str = ""


class InitiateRefundRequest(BaseModel):
    # Range checks belong to the ledger so the caller gets its specific message
    amount: float
    reason: str | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Refund declined"


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderItemResponse(BaseModel):
    product_id: str | None = None
    title: str
    display_title: str
    quantity: int
    unit_price: float
    line_subtotal: float


class CancellationResponse(BaseModel):
    reason: str | None = None
    cancelled_at: datetime
    cancelled_by: str | None = None


class ReturnResponse(BaseModel):
    status: str
    reason: str
    requested_at: datetime
    refund_amount: float | None = None
    notes: str | None = None
    decided_at: datetime | None = None
    bank_details: BankDetailsSchema | None = None


class RefundResponse(BaseModel):
    id: str
    amount: float
    status: str
    reason: str | None = None
    processed_at: datetime | None = None
    stripe_refund_id: str | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_name: str | None = None
    customer_email: str | None = None
    status: str
    payment_method: str
    payment_status: str
    paid_at: datetime | None = None
    stripe_payment_intent_id: str | None = None
    items: list[OrderItemResponse] = []
    subtotal: float
    discount: float
    shipping_charges: float
    total: float
    currency: str
    cancellation: CancellationResponse | None = None
    return_request: ReturnResponse | None = None
    refunds: list[RefundResponse] = []
    refunded_total: float
    suggested_refund_amount: float
    display_amount: float
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    count: int


class ActivityEntryResponse(BaseModel):
    kind: str
    title: str
    occurred_at: datetime
    detail: str | None = None


class PageResponse(BaseModel):
    orders: list[OrderResponse]
    page: int
    page_size: int
    total_items: int
    total_pages: int


class CancellationStatsResponse(BaseModel):
    total: int
    cancelled: int
    refunded: int


class ReturnStatsResponse(BaseModel):
    total: int
    requested: int
    approved: int
    rejected: int
    refunded: int


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
