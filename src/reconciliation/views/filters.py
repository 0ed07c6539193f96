"""Filter records for the operator's cancellation and return views.

Clients send plain strings; they are turned into these records at the
service boundary and rejected with a ValidationError when a value is not
recognised, so nothing downstream ever sees free-form filter input.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from protean.exceptions import ValidationError

PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class PaymentType(Enum):
    ALL = "all"
    COD = "cod"
    PREPAID = "prepaid"  # Anything that is not cash on delivery


class CancellationScope(Enum):
    ALL = "all"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class ReturnScope(Enum):
    ALL = "all"
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    REFUNDED = "refunded"


def parse_choice(enum_cls, value, field):
    """Resolve ``value`` to a member of ``enum_cls``; missing means ``all``."""
    if isinstance(value, enum_cls):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        return enum_cls("all")
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError({field: [f"Unknown {field} '{value}', expected one of: {choices}"]}) from None


def _parse_page(page, page_size):
    if page is None:
        page = 1
    if page_size is None:
        page_size = PAGE_SIZE
    if page < 1:
        raise ValidationError({"page": ["Page must be 1 or greater"]})
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValidationError({"page_size": [f"Page size must be between 1 and {MAX_PAGE_SIZE}"]})
    return page, page_size


@dataclass(frozen=True)
class CancellationView:
    kind: ClassVar[str] = "cancellations"

    payment_type: PaymentType = PaymentType.ALL
    scope: CancellationScope = CancellationScope.ALL
    search: str = ""
    page: int = 1
    page_size: int = PAGE_SIZE

    @classmethod
    def from_params(cls, payment_type=None, scope=None, search=None, page=None, page_size=None):
        page, page_size = _parse_page(page, page_size)
        return cls(
            payment_type=parse_choice(PaymentType, payment_type, "payment_type"),
            scope=parse_choice(CancellationScope, scope, "scope"),
            search=(search or "").strip(),
            page=page,
            page_size=page_size,
        )


@dataclass(frozen=True)
class ReturnView:
    kind: ClassVar[str] = "returns"

    payment_type: PaymentType = PaymentType.ALL
    scope: ReturnScope = ReturnScope.ALL
    search: str = ""
    page: int = 1
    page_size: int = PAGE_SIZE

    @classmethod
    def from_params(cls, payment_type=None, scope=None, search=None, page=None, page_size=None):
        page, page_size = _parse_page(page, page_size)
        return cls(
            payment_type=parse_choice(PaymentType, payment_type, "payment_type"),
            scope=parse_choice(ReturnScope, scope, "scope"),
            search=(search or "").strip(),
            page=page,
            page_size=page_size,
        )
