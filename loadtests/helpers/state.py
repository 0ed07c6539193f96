"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state; nothing is shared across users.
"""

from dataclasses import dataclass


@dataclass
class OrderState:
    """Tracks one simulated order through its post-sale journey."""

    order_id: str | None = None
    order_number: str | None = None
    payment_method: str = "stripe"
    total: float = 0.0
    return_status: str | None = None
    refunded: bool = False
