"""FastAPI routes for the reconciliation console: orders, views and gateway."""

import os

from fastapi import APIRouter, HTTPException

from reconciliation.api.schemas import (
    ActivityEntryResponse,
    ApproveReturnRequest,
    BankDetailsSchema,
    CancellationResponse,
    CancellationStatsResponse,
    CancelOrderRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    InitiateRefundRequest,
    OrderItemResponse,
    OrderListResponse,
    OrderResponse,
    PageResponse,
    RefundResponse,
    RegisterOrderRequest,
    RejectReturnRequest,
    RequestReturnRequest,
    ReturnResponse,
    ReturnStatsResponse,
)
from reconciliation.gateway import get_gateway
from reconciliation.gateway.fake_adapter import FakeGateway
from reconciliation.order import service
from reconciliation.order.repository import DEFAULT_LIST_LIMIT
from reconciliation.order.timeline import build_activity
from reconciliation.views.filters import CancellationView, ReturnView


def to_response(order) -> OrderResponse:
    """Flatten an Order aggregate into the console's response shape."""
    cancellation = None
    if order.cancellation:
        cancellation = CancellationResponse(
            reason=order.cancellation.reason,
            cancelled_at=order.cancellation.cancelled_at,
            cancelled_by=order.cancellation.cancelled_by,
        )

    return_request = None
    if order.return_request:
        bank = order.return_request.bank_details
        return_request = ReturnResponse(
            status=order.return_request.status,
            reason=order.return_request.reason,
            requested_at=order.return_request.requested_at,
            refund_amount=order.return_request.refund_amount,
            notes=order.return_request.notes,
            decided_at=order.return_request.decided_at,
            bank_details=BankDetailsSchema(
                account_holder_name=bank.account_holder_name,
                account_number=bank.account_number,
                routing_number=bank.routing_number,
                bank_name=bank.bank_name,
                account_type=bank.account_type,
            )
            if bank
            else None,
        )

    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        paid_at=order.paid_at,
        stripe_payment_intent_id=order.stripe_payment_intent_id,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id) if item.product_id else None,
                title=item.title,
                display_title=item.display_title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_subtotal=item.line_subtotal,
            )
            for item in order.ordered_items
        ],
        subtotal=order.subtotal,
        discount=order.discount,
        shipping_charges=order.shipping_charges,
        total=order.total,
        currency=order.currency,
        cancellation=cancellation,
        return_request=return_request,
        refunds=[
            RefundResponse(
                id=str(refund.id),
                amount=refund.amount,
                status=refund.status,
                reason=refund.reason,
                processed_at=refund.processed_at,
                stripe_refund_id=refund.stripe_refund_id,
            )
            for refund in order.ordered_refunds
        ],
        refunded_total=order.refunded_total,
        suggested_refund_amount=order.suggested_refund_amount,
        display_amount=order.display_amount,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _page_response(page) -> PageResponse:
    return PageResponse(
        orders=[to_response(order) for order in page.items],
        page=page.page,
        page_size=page.page_size,
        total_items=page.total_items,
        total_pages=page.total_pages,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def register_order(body: RegisterOrderRequest) -> OrderResponse:
    """Register an order handed over by the purchase flow."""
    order = service.register_order(**body.model_dump())
    return to_response(order)


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: str | None = None,
    payment_method: str | None = None,
    has_return: bool | None = None,
    search: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> OrderListResponse:
    orders = service.list_orders(
        status=status,
        payment_method=payment_method,
        has_return=has_return,
        search=search,
        limit=limit,
    )
    return OrderListResponse(orders=[to_response(o) for o in orders], count=len(orders))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return to_response(service.get_order(order_id))


@order_router.get("/{order_id}/activity", response_model=list[ActivityEntryResponse])
async def get_order_activity(order_id: str) -> list[ActivityEntryResponse]:
    order = service.get_order(order_id)
    return [
        ActivityEntryResponse(
            kind=entry.kind,
            title=entry.title,
            occurred_at=entry.occurred_at,
            detail=entry.detail,
        )
        for entry in build_activity(order)
    ]


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest | None = None) -> OrderResponse:
    body = body or CancelOrderRequest()
    order = service.record_cancellation(order_id, reason=body.reason, cancelled_by=body.cancelled_by)
    return to_response(order)


@order_router.put("/{order_id}/return/request", response_model=OrderResponse)
async def request_return(order_id: str, body: RequestReturnRequest) -> OrderResponse:
    order = service.request_return(
        order_id,
        reason=body.reason,
        bank_details=body.bank_details.model_dump() if body.bank_details else None,
    )
    return to_response(order)


@order_router.put("/{order_id}/return/approve", response_model=OrderResponse)
async def approve_return(order_id: str, body: ApproveReturnRequest | None = None) -> OrderResponse:
    body = body or ApproveReturnRequest()
    order = service.approve_return(order_id, notes=body.notes, refund_amount=body.refund_amount)
    return to_response(order)


@order_router.put("/{order_id}/return/reject", response_model=OrderResponse)
async def reject_return(order_id: str, body: RejectReturnRequest) -> OrderResponse:
    order = service.reject_return(order_id, notes=body.notes)
    return to_response(order)


@order_router.post("/{order_id}/refunds", status_code=201, response_model=OrderResponse)
async def initiate_refund(order_id: str, body: InitiateRefundRequest) -> OrderResponse:
    order = service.initiate_refund(order_id, amount=body.amount, reason=body.reason)
    return to_response(order)


# ---------------------------------------------------------------------------
# View Router
# ---------------------------------------------------------------------------
view_router = APIRouter(prefix="/views", tags=["views"])


@view_router.get("/cancellations", response_model=PageResponse)
async def cancellation_listing(
    payment_type: str | None = None,
    scope: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> PageResponse:
    view = CancellationView.from_params(
        payment_type=payment_type, scope=scope, search=search, page=page, page_size=page_size
    )
    return _page_response(service.cancellation_listing(view))


@view_router.get("/cancellations/stats", response_model=CancellationStatsResponse)
async def cancellation_stats(payment_type: str | None = None) -> CancellationStatsResponse:
    stats = service.cancellation_stats(payment_type)
    return CancellationStatsResponse(total=stats.total, cancelled=stats.cancelled, refunded=stats.refunded)


@view_router.get("/returns", response_model=PageResponse)
async def return_listing(
    payment_type: str | None = None,
    scope: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> PageResponse:
    view = ReturnView.from_params(payment_type=payment_type, scope=scope, search=search, page=page, page_size=page_size)
    return _page_response(service.return_listing(view))


@view_router.get("/returns/stats", response_model=ReturnStatsResponse)
async def return_stats(payment_type: str | None = None) -> ReturnStatsResponse:
    stats = service.return_stats(payment_type)
    return ReturnStatsResponse(
        total=stats.total,
        requested=stats.requested,
        approved=stats.approved,
        rejected=stats.rejected,
        refunded=stats.refunded,
    )


# ---------------------------------------------------------------------------
# Gateway Router
# ---------------------------------------------------------------------------
gateway_router = APIRouter(prefix="/gateway", tags=["gateway"])


@gateway_router.post("/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
