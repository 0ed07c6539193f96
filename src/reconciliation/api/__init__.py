"""HTTP surface of the reconciliation context.

Typed errors map onto status codes: validation 400, not found 404, state
conflicts 409, failed business gates 422, gateway failures 502. Bodies are
always ``{"error": <field-keyed messages>}``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from reconciliation.api.routes import gateway_router, order_router, view_router
from reconciliation.errors import (
    AlreadyCancelled,
    AlreadyRefunded,
    InvalidTransition,
    NotEligible,
    PaymentGatewayError,
)

__all__ = ["gateway_router", "order_router", "register_error_handlers", "view_router"]

ERROR_STATUS_CODES = {
    ValidationError: 400,
    ObjectNotFoundError: 404,
    InvalidTransition: 409,
    AlreadyRefunded: 409,
    AlreadyCancelled: 409,
    NotEligible: 422,
    PaymentGatewayError: 502,
}


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
        return JSONResponse(status_code=status_code, content={"error": getattr(exc, "messages", str(exc))})

    return handle


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's default handlers, then the reconciliation-specific ones."""
    register_exception_handlers(app)
    for exc_cls, status_code in ERROR_STATUS_CODES.items():
        app.add_exception_handler(exc_cls, _handler(status_code))
