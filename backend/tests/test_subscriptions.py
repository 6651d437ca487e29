"""
Tests for the subscription lifecycle and Stripe webhooks.
"""

import json
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch
import stripe
from django.test import TestCase
from chathub.core.errors import NotFoundError, UpstreamError, ValidationError
from chathub.db.models import CreditTransaction, Plan, Subscription
from chathub.services import credit_ledger, subscription_service
from chathub.services.subscription_service import add_one_month
from helpers import create_user

PERIOD_END = 1893456000  # 2030-01-01 UTC


class TestPlans(TestCase):

    def test_ensure_default_plans_is_idempotent(self):
        subscription_service.ensure_default_plans()
        plans = subscription_service.ensure_default_plans()

        self.assertEqual([p.name for p in plans], ["Free", "Starter", "Pro"])
        self.assertEqual(Plan.objects.count(), 3)

    def test_add_one_month_clamps_day(self):
        value = datetime(2024, 1, 31, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(add_one_month(value), datetime(2024, 2, 29, 12, 0, tzinfo=dt_timezone.utc))
        self.assertEqual(add_one_month(datetime(2024, 12, 15, tzinfo=dt_timezone.utc)).year, 2025)

    def test_free_subscription_grants_allowance(self):
        user = create_user(credits="0")

        subscription = subscription_service.create_free_subscription(user.id)

        self.assertEqual(subscription.status, Subscription.STATUS_ACTIVE)
        self.assertTrue(subscription_service.is_free_subscription(subscription))
        self.assertEqual(credit_ledger.get_balance(user.id), Decimal("10"))
        self.assertTrue(CreditTransaction.objects.filter(user=user, payment_method="free").exists())


@patch("chathub.services.subscription_service._stripe")
class TestSubscriptionLifecycle(TestCase):

    def setUp(self):
        subscription_service.ensure_default_plans()
        self.pro = Plan.objects.get(name="Pro")
        self.user = create_user(credits="0")
        self.free = subscription_service.create_free_subscription(self.user.id)

    def activate(self):
        return subscription_service.activate_plan(
            self.user.id, self.pro, "sub_123",
            period_end=datetime.fromtimestamp(PERIOD_END, tz=dt_timezone.utc),
        )

    def test_activate_plan(self, mock_stripe):
        subscription = self.activate()

        self.free.refresh_from_db()
        self.assertEqual(self.free.status, Subscription.STATUS_CANCELED)
        self.assertEqual(subscription.status, Subscription.STATUS_ACTIVE)
        self.assertEqual(credit_ledger.get_balance(self.user.id), Decimal("2500"))
        transaction = CreditTransaction.objects.get(subscription=subscription)
        self.assertEqual(transaction.credits_deducted, Decimal("10"))
        self.assertEqual(transaction.credits_added, Decimal("2500"))
        self.assertEqual(
            Subscription.objects.filter(user=self.user, status__in=Subscription.OPEN_STATUSES).count(), 1
        )
        mock_stripe.return_value.Subscription.cancel.assert_not_called()

    def test_activate_plan_cancels_previous_paid_subscription(self, mock_stripe):
        self.activate()

        subscription_service.activate_plan(self.user.id, self.pro, "sub_456")

        mock_stripe.return_value.Subscription.cancel.assert_called_once_with("sub_123")

    def test_request_downgrade(self, mock_stripe):
        self.activate()

        subscription = subscription_service.request_downgrade(self.user.id)

        self.assertEqual(subscription.status, Subscription.STATUS_PENDING_DOWNGRADE)
        self.assertEqual(int(subscription.end_date.timestamp()), PERIOD_END)
        self.assertEqual(credit_ledger.get_balance(self.user.id), Decimal("2500"))
        mock_stripe.return_value.Subscription.modify.assert_called_once_with("sub_123", cancel_at_period_end=True)

    def test_downgrade_rejected_by_provider(self, mock_stripe):
        self.activate()
        mock_stripe.return_value.Subscription.modify.side_effect = stripe.StripeError("boom")

        with self.assertRaises(UpstreamError):
            subscription_service.request_downgrade(self.user.id)

        self.assertEqual(subscription_service.get_open_subscription(self.user.id).status, Subscription.STATUS_ACTIVE)

    def test_free_plan_cannot_downgrade(self, mock_stripe):
        with self.assertRaises(ValidationError):
            subscription_service.request_downgrade(self.user.id)

    def test_restore(self, mock_stripe):
        self.activate()
        subscription_service.request_downgrade(self.user.id)

        subscription = subscription_service.restore_subscription(self.user.id)

        self.assertEqual(subscription.status, Subscription.STATUS_ACTIVE)
        mock_stripe.return_value.Subscription.modify.assert_called_with("sub_123", cancel_at_period_end=False)

    def test_restore_without_pending_downgrade(self, mock_stripe):
        with self.assertRaises(NotFoundError):
            subscription_service.restore_subscription(self.user.id)

    def test_cancel_all(self, mock_stripe):
        self.activate()

        canceled = subscription_service.cancel_all_subscriptions(self.user.id)

        self.assertEqual(canceled, 1)
        self.assertIsNone(subscription_service.get_open_subscription(self.user.id))
        self.assertEqual(credit_ledger.get_balance(self.user.id), Decimal("0"))
        mock_stripe.return_value.Subscription.cancel.assert_called_once_with("sub_123")

    def test_subscription_updated_webhook(self, mock_stripe):
        subscription = self.activate()

        subscription_service.handle_subscription_updated(
            {"id": "sub_123", "cancel_at_period_end": True, "current_period_end": PERIOD_END + 86400}
        )

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, Subscription.STATUS_PENDING_DOWNGRADE)
        self.assertEqual(int(subscription.end_date.timestamp()), PERIOD_END + 86400)

    def test_update_for_replaced_subscription_is_ignored(self, mock_stripe):
        old = self.activate()
        subscription_service.activate_plan(self.user.id, self.pro, "sub_new")

        result = subscription_service.handle_subscription_updated(
            {"id": "sub_123", "cancel_at_period_end": False, "current_period_end": PERIOD_END}
        )

        self.assertIsNone(result)
        old.refresh_from_db()
        self.assertEqual(old.status, Subscription.STATUS_CANCELED)
        self.assertEqual(
            Subscription.objects.filter(user=self.user, status__in=Subscription.OPEN_STATUSES).count(), 1
        )

    def test_update_with_canceled_status_cancels(self, mock_stripe):
        subscription = self.activate()

        free = subscription_service.handle_subscription_updated(
            {"id": "sub_123", "status": "canceled", "cancel_at_period_end": False}
        )

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, Subscription.STATUS_CANCELED)
        self.assertTrue(subscription_service.is_free_subscription(free))

    def test_webhook_event_object_is_normalized(self, mock_stripe):
        subscription = self.activate()
        event = stripe.Event.construct_from({
            "id": "evt_9",
            "type": "customer.subscription.updated",
            "data": {"object": {
                "id": "sub_123",
                "cancel_at_period_end": True,
                "items": {"data": [{"current_period_end": PERIOD_END}]},
            }},
        }, "sk_test")

        self.assertTrue(subscription_service.handle_webhook_event(event))

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, Subscription.STATUS_PENDING_DOWNGRADE)
        self.assertEqual(int(subscription.end_date.timestamp()), PERIOD_END)

    def test_subscription_deleted_webhook(self, mock_stripe):
        subscription = self.activate()

        free = subscription_service.handle_subscription_deleted({"id": "sub_123"})

        subscription.refresh_from_db()
        self.assertEqual(subscription.status, Subscription.STATUS_CANCELED)
        self.assertTrue(subscription_service.is_free_subscription(free))
        self.assertEqual(credit_ledger.get_balance(self.user.id), Decimal("2500"))

    def test_checkout_completed_webhook(self, mock_stripe):
        self.pro.stripe_product_id = "prod_pro"
        self.pro.save()
        mock_stripe.return_value.Subscription.retrieve.return_value = {
            "id": "sub_789",
            "customer": "cus_1",
            "items": {"data": [{"price": {"id": "price_1", "product": "prod_pro"}, "current_period_end": PERIOD_END}]},
        }

        subscription = subscription_service.handle_checkout_completed(
            {"client_reference_id": str(self.user.id), "subscription": "sub_789"}
        )

        self.assertEqual(subscription.plan, self.pro)
        self.assertEqual(subscription.provider_ref, "sub_789")
        self.assertEqual(int(subscription.end_date.timestamp()), PERIOD_END)
        self.user.refresh_from_db()
        self.assertEqual(self.user.stripe_customer_id, "cus_1")


class TestSubscriptionEndpoints(TestCase):

    def setUp(self):
        subscription_service.ensure_default_plans()
        self.user = create_user(credits="0")
        subscription_service.create_free_subscription(self.user.id)
        self.client.force_login(self.user)

    def test_list_plans(self):
        response = self.client.get("/api/subscriptions/plans/")
        self.assertEqual([p["name"] for p in response.json()["plans"]], ["Free", "Starter", "Pro"])

    def test_current_subscription(self):
        data = self.client.get("/api/subscriptions/current/").json()
        self.assertEqual(data["subscription"]["plan"]["name"], "Free")
        self.assertEqual(data["subscription"]["status"], "Active")

    def test_downgrade_from_free_plan(self):
        response = self.client.post("/api/subscriptions/downgrade/")
        self.assertEqual(response.status_code, 400)

    def test_cancel(self):
        response = self.client.post("/api/subscriptions/cancel/")
        self.assertEqual(response.json()["canceled"], 1)
        self.assertEqual(credit_ledger.get_balance(self.user.id), Decimal("0"))

    def test_requires_authentication(self):
        self.client.logout()
        self.assertEqual(self.client.get("/api/subscriptions/current/").status_code, 401)


@patch("chathub.api.webhook.STRIPE_WEBHOOK_SECRET", "")
class TestStripeWebhook(TestCase):
    url = "/api/webhook/stripe/"

    def post_event(self, event):
        return self.client.post(self.url, data=json.dumps(event), content_type="application/json")

    def test_unknown_event_is_acknowledged(self):
        response = self.post_event({"id": "evt_1", "type": "invoice.created", "data": {"object": {}}})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True, "handled": False})

    def test_subscription_updated_event(self):
        subscription_service.ensure_default_plans()
        user = create_user(credits="0")
        with patch("chathub.services.subscription_service._stripe"):
            subscription = subscription_service.activate_plan(user.id, Plan.objects.get(name="Starter"), "sub_w")

        response = self.post_event({
            "id": "evt_2",
            "type": "customer.subscription.updated",
            "data": {"object": {"id": "sub_w", "cancel_at_period_end": True, "current_period_end": PERIOD_END}},
        })

        self.assertEqual(response.json()["handled"], True)
        subscription.refresh_from_db()
        self.assertEqual(subscription.status, Subscription.STATUS_PENDING_DOWNGRADE)

    def test_invalid_payload(self):
        response = self.client.post(self.url, data="not json", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_invalid_signature(self):
        with patch("chathub.api.webhook.STRIPE_WEBHOOK_SECRET", "whsec_test"):
            response = self.client.post(
                self.url,
                data=json.dumps({"id": "evt_3", "type": "invoice.created"}),
                content_type="application/json",
                HTTP_STRIPE_SIGNATURE="t=1,v1=deadbeef",
            )
        self.assertEqual(response.status_code, 400)
