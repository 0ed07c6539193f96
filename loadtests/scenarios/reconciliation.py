"""Reconciliation load test scenarios.

Stateful SequentialTaskSet journeys that mirror what operators do all day:
refund a prepaid cancellation, decide a return, and read the dashboards.
DoubleRefundJourney fires two refunds at the same order to exercise the
per-order lock; exactly one may succeed.
"""

from concurrent.futures import ThreadPoolExecutor

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import bank_details, order_data, partial_amount, return_reason
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState


class _OrderJourney(SequentialTaskSet):
    payment_method = "stripe"

    def on_start(self):
        self.state = OrderState(payment_method=self.payment_method)

    def register(self):
        payload = order_data(self.payment_method)
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["id"]
                self.state.order_number = body["order_number"]
                self.state.total = body["total"]
            else:
                resp.failure(f"Register order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class CancellationRefundJourney(_OrderJourney):
    """Register (stripe, paid) -> Cancel -> Refund -> second Refund rejected."""

    @task
    def register_order(self):
        self.register()

    @task
    def cancel(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Customer changed mind", "cancelled_by": "customer"},
            catch_response=True,
            name="PUT /orders/{id}/cancel",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Cancel failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def refund(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/refunds",
            json={"amount": partial_amount(self.state.total)},
            catch_response=True,
            name="POST /orders/{id}/refunds",
        ) as resp:
            if resp.status_code == 201:
                self.state.refunded = True
            else:
                resp.failure(f"Refund failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def refund_again(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/refunds",
            json={"amount": 1.0},
            catch_response=True,
            name="POST /orders/{id}/refunds (duplicate)",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Duplicate refund not rejected: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class ReturnDecisionJourney(_OrderJourney):
    """Register (COD) -> Request return with bank details -> Approve -> Refund."""

    payment_method = "cod"

    @task
    def register_order(self):
        self.register()

    @task
    def request_return(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/return/request",
            json={"reason": return_reason(), "bank_details": bank_details()},
            catch_response=True,
            name="PUT /orders/{id}/return/request",
        ) as resp:
            if resp.status_code == 200:
                self.state.return_status = "requested"
            else:
                resp.failure(f"Return request failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def approve(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/return/approve",
            json={"notes": "Photos confirm damage"},
            catch_response=True,
            name="PUT /orders/{id}/return/approve",
        ) as resp:
            if resp.status_code == 200:
                self.state.return_status = "approved"
            else:
                resp.failure(f"Approve failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def refund(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/refunds",
            json={"amount": self.state.total},
            catch_response=True,
            name="POST /orders/{id}/refunds (bank transfer)",
        ) as resp:
            if resp.status_code == 201:
                self.state.refunded = True
            else:
                resp.failure(f"Refund failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class DoubleRefundJourney(_OrderJourney):
    """Register -> Cancel -> two concurrent refunds; exactly one must land."""

    @task
    def register_order(self):
        self.register()
        self.client.put(f"/orders/{self.state.order_id}/cancel", json={}, name="PUT /orders/{id}/cancel")

    @task
    def race(self):
        def attempt(_):
            with self.client.post(
                f"/orders/{self.state.order_id}/refunds",
                json={"amount": self.state.total},
                catch_response=True,
                name="POST /orders/{id}/refunds (race)",
            ) as resp:
                if resp.status_code in (201, 409):
                    resp.success()
                return resp.status_code

        with ThreadPoolExecutor(max_workers=2) as pool:
            codes = sorted(pool.map(attempt, range(2)))

        if codes != [201, 409]:
            self.user.environment.events.request.fire(
                request_type="CHECK",
                name="double refund guard",
                response_time=0,
                response_length=0,
                exception=AssertionError(f"Expected one success and one conflict, got {codes}"),
            )

    @task
    def done(self):
        self.interrupt()


class DashboardReader(SequentialTaskSet):
    """Operator flipping through the cancellation and return tabs."""

    @task
    def cancellation_stats(self):
        for payment_type in ("all", "cod", "prepaid"):
            self.client.get(
                f"/views/cancellations/stats?payment_type={payment_type}",
                name="GET /views/cancellations/stats",
            )

    @task
    def return_tabs(self):
        self.client.get("/views/returns/stats", name="GET /views/returns/stats")
        for scope in ("requested", "approved", "refunded", "rejected"):
            self.client.get(f"/views/returns?scope={scope}", name="GET /views/returns")

    @task
    def done(self):
        self.interrupt()


class ReconciliationUser(HttpUser):
    """Weighted mix of operator journeys."""

    wait_time = between(0.5, 2)
    tasks = {
        CancellationRefundJourney: 4,
        ReturnDecisionJourney: 3,
        DoubleRefundJourney: 1,
        DashboardReader: 4,
    }
