"""
Test suite for orders API.
"""

from decimal import Decimal

from django.test import TestCase
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APIClient
from rest_framework import status

from access.roles import RoleLevel
from orders.models import Order
from orders.workflows import OrderStatus
from references.models import Customer


# Helper function to create users
def create_user(email, role_level=RoleLevel.CUSTOMER, **extra):
    return get_user_model().objects.create_user(
        email=email, password="tstpw123", role_level=role_level, **extra
    )


# Helper functions for URLs
def order_list_url():
    return reverse("orders:order-list")


def order_detail_url(order_id):
    return reverse("orders:order-detail", args=[order_id])


def order_action_url(order_id, action):
    return reverse(f"orders:order-{action}", args=[order_id])


class OrderTestBase(TestCase):
    """Base test class with common setup for all order tests."""

    def setUp(self):
        self.client = APIClient()

        # --- create customers ---
        self.acme = Customer.objects.create(
            name="Acme Dental", account_number="ACME-001"
        )
        self.globex = Customer.objects.create(
            name="Globex Clinic", account_number="GLBX-001"
        )

        # --- create users ---
        self.rep = create_user("rep@example.com", RoleLevel.SALES_REP)
        self.other_rep = create_user("rep2@example.com", RoleLevel.SALES_REP)
        self.coordinator = create_user(
            "ops@example.com", RoleLevel.FULFILLMENT_COORDINATOR
        )
        self.manager = create_user(
            "manager@example.com", RoleLevel.SALES_MANAGER
        )
        self.admin = create_user("admin@example.com", RoleLevel.ADMIN)
        self.buyer = create_user("buyer@example.com", customer=self.acme)
        self.outsider = create_user(
            "outsider@example.com", customer=self.globex
        )

        # --- create test orders ---
        self.order = self.create_order(OrderStatus.PLACED)

    def create_order(self, order_status, customer=None, **extra):
        return Order.objects.create(
            customer=customer or self.acme,
            assigned_sales_rep=self.rep,
            created_by=self.rep,
            status=order_status.value,
            total_amount=Decimal("120.50"),
            **extra,
        )


class OrderRetrieveTests(OrderTestBase):
    def test_requires_authentication(self):
        res = self.client.get(order_detail_url(self.order.id))
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_assigned_rep_gets_snapshot_with_actions(self):
        self.client.force_authenticate(self.rep)
        res = self.client.get(order_detail_url(self.order.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status_code"], 200)
        payload = res.data["payload"]
        self.assertEqual(payload["status"], OrderStatus.PLACED.value)
        self.assertEqual(payload["customer_id"], self.acme.id)
        self.assertEqual(payload["next_status"], OrderStatus.PAID.value)
        self.assertTrue(payload["actions"]["can_confirm_payment"])
        self.assertIn("notes", payload)

    def test_customer_does_not_see_internal_notes(self):
        self.client.force_authenticate(self.buyer)
        res = self.client.get(order_detail_url(self.order.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertNotIn("notes", res.data["payload"])
        self.assertTrue(
            res.data["payload"]["actions"]["can_request_cancellation"]
        )

    def test_customer_cannot_see_other_company_order(self):
        self.client.force_authenticate(self.outsider)
        res = self.client.get(order_detail_url(self.order.id))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class OrderListTests(OrderTestBase):
    def setUp(self):
        super().setUp()
        self.globex_order = self.create_order(
            OrderStatus.PENDING, customer=self.globex
        )
        self.globex_order.assigned_sales_rep = self.other_rep
        self.globex_order.created_by = self.other_rep
        self.globex_order.save()

    def ids(self, res):
        return {row["id"] for row in res.data["results"]}

    def test_coordinator_sees_all_orders(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.get(order_list_url())
        self.assertEqual(
            self.ids(res), {self.order.id, self.globex_order.id}
        )

    def test_rep_sees_assigned_orders(self):
        self.client.force_authenticate(self.other_rep)
        res = self.client.get(order_list_url())
        self.assertEqual(self.ids(res), {self.globex_order.id})

    def test_customer_sees_company_orders(self):
        self.client.force_authenticate(self.buyer)
        res = self.client.get(order_list_url())
        self.assertEqual(self.ids(res), {self.order.id})

    def test_creator_without_assignment_cannot_see_order(self):
        self.globex_order.created_by = self.rep
        self.globex_order.save()
        self.client.force_authenticate(self.rep)

        res = self.client.get(order_list_url())
        self.assertEqual(self.ids(res), {self.order.id})

        res = self.client.get(order_detail_url(self.globex_order.id))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_customer_without_company_sees_nothing(self):
        orphan = create_user("orphan@example.com")
        self.client.force_authenticate(orphan)
        res = self.client.get(order_list_url())
        self.assertEqual(self.ids(res), set())

    def test_filter_by_status(self):
        self.client.force_authenticate(self.manager)
        res = self.client.get(order_list_url(), {"status": "PENDING"})
        self.assertEqual(self.ids(res), {self.globex_order.id})

    def test_filter_assigned_to_me(self):
        self.client.force_authenticate(self.rep)
        res = self.client.get(order_list_url(), {"assigned_sales_rep": "me"})
        self.assertEqual(self.ids(res), {self.order.id})


class OrderCreateDeleteTests(OrderTestBase):
    def test_rep_creates_pending_order(self):
        self.client.force_authenticate(self.rep)
        res = self.client.post(
            order_list_url(),
            {"customer": self.acme.id, "total_amount": "10.00"},
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        payload = res.data["payload"]
        self.assertEqual(payload["status"], OrderStatus.PENDING.value)
        created = Order.objects.get(id=payload["id"])
        self.assertEqual(created.created_by, self.rep)
        self.assertEqual(created.assigned_sales_rep, self.rep)
        self.assertTrue(payload["actions"]["can_view"])

    def test_customer_cannot_create_order(self):
        self.client.force_authenticate(self.buyer)
        res = self.client.post(
            order_list_url(),
            {"customer": self.acme.id, "total_amount": "10.00"},
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["error"], "authorization_denied")

    def test_only_admin_deletes(self):
        self.client.force_authenticate(self.manager)
        res = self.client.delete(order_detail_url(self.order.id))
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        res = self.client.delete(order_detail_url(self.order.id))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(Order.objects.filter(id=self.order.id).exists())


class OrderTransitionTests(OrderTestBase):
    def test_assigned_rep_confirms_payment(self):
        self.client.force_authenticate(self.rep)
        res = self.client.post(
            order_action_url(self.order.id, "confirm-payment"),
            {"payment_reference": "PAY-42", "expected_status": "PLACED"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        payload = res.data["payload"]
        self.assertTrue(payload["success"])
        self.assertEqual(payload["old_status"], OrderStatus.PLACED.value)
        self.assertEqual(payload["new_status"], OrderStatus.PAID.value)
        self.assertFalse(payload["entity"]["actions"]["can_confirm_payment"])

        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PAID.value)
        self.assertIsNotNone(self.order.payment_confirmed_at)
        self.assertEqual(self.order.payment_reference, "PAY-42")
        self.assertIn("PAYMENT", self.order.notes)

    def test_stale_expected_status_conflicts(self):
        self.client.force_authenticate(self.rep)
        res = self.client.post(
            order_action_url(self.order.id, "confirm-payment"),
            {"expected_status": "PENDING"},
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"], "stale_state")
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.PLACED.value)

    def test_coordinator_cannot_confirm_payment(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            order_action_url(self.order.id, "confirm-payment")
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["error"], "authorization_denied")
        self.assertIsNone(res.data["payload"])

    def test_unassigned_rep_cannot_reach_order(self):
        self.client.force_authenticate(self.other_rep)
        res = self.client.post(
            order_action_url(self.order.id, "confirm-payment")
        )
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_skipping_a_step_is_illegal(self):
        self.client.force_authenticate(self.manager)
        res = self.client.post(
            order_action_url(self.order.id, "change-status"),
            {"new_status": "SHIPPED"},
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "illegal_transition")

    def test_mark_shipped_requires_tracking_number(self):
        order = self.create_order(OrderStatus.PROCESSING)
        self.client.force_authenticate(self.coordinator)

        res = self.client.post(order_action_url(order.id, "mark-shipped"))
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

        res = self.client.post(
            order_action_url(order.id, "mark-shipped"),
            {"tracking_number": "1Z999", "carrier": "UPS"},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.SHIPPED.value)
        self.assertEqual(order.tracking_number, "1Z999")
        self.assertIsNotNone(order.shipped_at)

    def test_sales_rep_cannot_ship(self):
        order = self.create_order(OrderStatus.PROCESSING)
        self.client.force_authenticate(self.rep)

        res = self.client.post(
            order_action_url(order.id, "mark-shipped"),
            {"tracking_number": "1Z999"},
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_manager_cancels_with_reason(self):
        self.client.force_authenticate(self.manager)
        url = order_action_url(self.order.id, "change-status")

        res = self.client.post(url, {"new_status": "CANCELLED"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"], "validation_failure")

        res = self.client.post(
            url, {"new_status": "CANCELLED", "reason": "Duplicate order"}
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CANCELLED.value)
        self.assertEqual(self.order.cancellation_reason, "Duplicate order")
        self.assertIsNotNone(self.order.cancelled_at)

    def test_shipped_order_cannot_be_cancelled_by_manager(self):
        order = self.create_order(OrderStatus.SHIPPED)
        self.client.force_authenticate(self.manager)

        res = self.client.post(
            order_action_url(order.id, "change-status"),
            {"new_status": "CANCELLED", "reason": "Too late"},
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_customer_requests_cancellation(self):
        self.client.force_authenticate(self.buyer)
        res = self.client.post(
            order_action_url(self.order.id, "request-cancellation"),
            {"reason": "Ordered by mistake"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            res.data["payload"]["new_status"], OrderStatus.PLACED.value
        )
        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.cancellation_requested_at)
        self.assertEqual(self.order.cancellation_reason, "Ordered by mistake")

    def test_staff_adds_note(self):
        self.client.force_authenticate(self.rep)
        res = self.client.post(
            order_action_url(self.order.id, "add-note"),
            {"note": "Customer prefers morning delivery."},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertIn("morning delivery", self.order.notes)
        self.assertIn("rep@example.com", self.order.notes)

    def test_customer_cannot_add_note(self):
        self.client.force_authenticate(self.buyer)
        res = self.client.post(
            order_action_url(self.order.id, "add-note"), {"note": "Hi"}
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_tracking_keeps_status(self):
        order = self.create_order(
            OrderStatus.SHIPPED, tracking_number="OLD", carrier="UPS"
        )
        self.client.force_authenticate(self.coordinator)

        res = self.client.post(
            order_action_url(order.id, "update-tracking"),
            {"tracking_number": "NEW"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.SHIPPED.value)
        self.assertEqual(order.tracking_number, "NEW")
        self.assertEqual(order.carrier, "UPS")
