"""Faker-based data generators for Locust load test scenarios.

Payloads match the field names of the reconciliation API's Pydantic request
schemas and pass the Order aggregate's validation rules.
"""

import random
import uuid

from faker import Faker

fake = Faker()


def unique_order_number() -> str:
    """Order numbers like 'ORD-LT-a1b2c3d4', unique per run."""
    return f"ORD-LT-{uuid.uuid4().hex[:8]}"


def order_items(count: int | None = None) -> list[dict]:
    items = []
    for _ in range(count or random.randint(1, 3)):
        items.append(
            {
                # Roughly one line in ten points at a deleted catalogue entry
                "product_id": None if random.random() < 0.1 else f"prod-{uuid.uuid4().hex[:6]}",
                "title": fake.catch_phrase()[:60],
                "quantity": random.randint(1, 4),
                "unit_price": round(random.uniform(5, 120), 2),
            }
        )
    return items


def order_data(payment_method: str = "stripe") -> dict:
    items = order_items()
    subtotal = round(sum(i["quantity"] * i["unit_price"] for i in items), 2)
    shipping = round(random.choice([0.0, 4.99, 9.99]), 2)
    payload = {
        "order_number": unique_order_number(),
        "payment_method": payment_method,
        "payment_status": "completed" if payment_method == "stripe" else "pending",
        "customer_name": fake.name(),
        "customer_email": fake.email(),
        "items": items,
        "subtotal": subtotal,
        "shipping_charges": shipping,
        "total": round(subtotal + shipping, 2),
        "currency": "USD",
    }
    if payment_method == "stripe":
        payload["stripe_payment_intent_id"] = f"pi_{uuid.uuid4().hex[:16]}"
        payload["paid_at"] = fake.date_time_this_month().isoformat()
    return payload


def bank_details() -> dict:
    return {
        "account_holder_name": fake.name(),
        "account_number": str(random.randint(10**9, 10**10 - 1)),
        "routing_number": str(random.randint(10**8, 10**9 - 1)),
        "bank_name": f"{fake.last_name()} Bank",
        "account_type": random.choice(["checking", "savings"]),
    }


def return_reason() -> str:
    return random.choice(
        [
            "Damaged on arrival",
            "Wrong shade delivered",
            "Allergic reaction",
            "Changed my mind",
            "Package arrived late",
        ]
    )


def partial_amount(total: float) -> float:
    return round(total * random.uniform(0.3, 1.0), 2)
