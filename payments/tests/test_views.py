import hashlib
import hmac
import json
import time
from datetime import timedelta
from unittest.mock import MagicMock, patch

import stripe
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from payments.models import Order, Subscription

from .helpers import FULL_CREDENTIALS, ccavenue_params, enc_response, make_gateway, make_order


class CreateSessionViewTests(TestCase):
    url = reverse("payments:create_session")

    def post(self, **body):
        return self.client.post(self.url, data=json.dumps(body), content_type="application/json")

    def valid_body(self, **overrides):
        body = {"gateway": "razorpay", "planId": "plan_pro", "userId": "user_1", "amount": 999, "currency": "inr"}
        body.update(overrides)
        return body

    def test_rejects_bad_requests(self):
        cases = [
            ({"gateway": "bitcoin"}, "Invalid payment gateway"),
            ({"planId": ""}, "Missing fields: planId"),
            ({"userId": None}, "Missing fields: userId"),
            ({"amount": "abc"}, "Invalid amount"),
            ({"amount": 0}, "Amount must be > 0"),
            ({"amount": -5}, "Amount must be > 0"),
            ({"currency": ""}, "currency must be a 3-letter ISO 4217 code"),
            ({"currency": "RUPEE"}, "currency must be a 3-letter ISO 4217 code"),
            ({"planId": "p" * 65}, "planId must be at most 64 characters"),
            ({"userId": "u" * 129}, "userId must be at most 128 characters"),
            ({"amount": "9.999"}, "Amount must have at most 2 decimal places"),
            ({"amount": "10000000000"}, "Amount is too large"),
        ]
        for overrides, message in cases:
            with self.subTest(overrides=overrides):
                resp = self.post(**self.valid_body(**overrides))
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["error"], message)
        self.assertFalse(Order.objects.exists())

    def test_empty_body(self):
        resp = self.client.post(self.url, data="not json", content_type="application/json")
        self.assertEqual(resp.status_code, 400)

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)

    def test_razorpay_session(self):
        make_gateway("razorpay")
        client = MagicMock()
        client.order.create.return_value = {"id": "order_Rzp1", "amount": 99900, "currency": "INR"}
        with patch("payments.integrations.razorpay_orders.razorpay.Client", return_value=client):
            resp = self.post(**self.valid_body())

        self.assertEqual(resp.status_code, 200)
        session = resp.json()["session"]
        order = Order.objects.get()
        self.assertEqual(session["id"], "order_Rzp1")
        self.assertEqual(session["key"], FULL_CREDENTIALS["razorpay"]["keyId"])
        self.assertEqual(session["orderId"], order.order_id)
        self.assertEqual(order.currency, "INR")
        self.assertEqual(client.order.create.call_args.kwargs["data"]["amount"], 99900)
        self.assertNotIn("keySecret", json.dumps(session))

    def test_inactive_gateway_is_400(self):
        make_gateway("razorpay", active=False)
        with patch("payments.integrations.razorpay_orders.razorpay.Client") as client:
            resp = self.post(**self.valid_body())
        self.assertEqual(resp.status_code, 400)
        client.assert_not_called()
        self.assertFalse(Order.objects.exists())

    def test_misconfigured_gateway_is_400(self):
        make_gateway("ccavenue", credentials={"merchantId": "M123"})
        resp = self.post(**self.valid_body(gateway="ccavenue"))
        self.assertEqual(resp.status_code, 400)
        self.assertIn("workingKey", resp.json()["error"])

    def test_remote_failure_is_502_with_order_id(self):
        make_gateway("stripe")
        with patch("stripe.checkout.Session.create", side_effect=stripe.StripeError("boom")):
            resp = self.post(**self.valid_body(gateway="stripe", currency="USD"))
        self.assertEqual(resp.status_code, 502)
        order = Order.objects.get()
        self.assertEqual(resp.json()["orderId"], order.order_id)
        self.assertEqual(order.status, Order.FAILED)

    def test_form_encoded_body_accepted(self):
        make_gateway("ccavenue")
        resp = self.client.post(self.url, data=self.valid_body(gateway="ccavenue"))
        self.assertEqual(resp.status_code, 200)
        self.assertIn("encRequest", resp.json()["session"])

    def test_boundary_values_accepted(self):
        make_gateway("ccavenue")
        resp = self.post(**self.valid_body(gateway="ccavenue", amount="19.990", planId="p" * 64, userId="u" * 128))
        self.assertEqual(resp.status_code, 200)
        order = Order.objects.get()
        self.assertEqual(str(order.amount), "19.99")
        self.assertEqual(len(order.plan_id), 64)

    @override_settings(PAYMENTS_MAINTENANCE_MODE=True)
    def test_maintenance_mode(self):
        make_gateway("ccavenue")
        resp = self.post(**self.valid_body(gateway="ccavenue"))
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json(), {"error": "Payments are currently disabled."})
        self.assertFalse(Order.objects.exists())


class CCAvenueResponseViewTests(TestCase):
    url = reverse("payments:ccavenue_response")

    def setUp(self):
        make_gateway("ccavenue")
        self.order = make_order()

    def test_success_redirects_to_success_page(self):
        resp = self.client.post(self.url, {"encResp": enc_response(ccavenue_params())})
        self.assertRedirects(resp, "/payment/success?orderId=order_123", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.SUCCESS)
        self.assertEqual(Subscription.objects.count(), 1)

    def test_failure_status_redirects_to_failure_page(self):
        resp = self.client.post(self.url, {"encResp": enc_response(ccavenue_params(status="Aborted"))})
        self.assertRedirects(resp, "/payment/failure?orderId=order_123", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.FAILED)

    def test_undecryptable_payload(self):
        for enc in ("garbage", ""):
            with self.subTest(enc=enc):
                resp = self.client.post(self.url, {"encResp": enc})
                self.assertRedirects(resp, "/payment/failure?orderId=", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def test_missing_field_keeps_order_pending(self):
        params = ccavenue_params()
        del params["merchant_param1"]
        resp = self.client.post(self.url, {"encResp": enc_response(params)})
        self.assertRedirects(resp, "/payment/failure?orderId=order_123", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)
        self.assertFalse(Subscription.objects.exists())

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)

    @override_settings(PAYMENTS_MAINTENANCE_MODE=True)
    def test_callbacks_bypass_maintenance(self):
        resp = self.client.post(self.url, {"encResp": enc_response(ccavenue_params())})
        self.assertRedirects(resp, "/payment/success?orderId=order_123", fetch_redirect_response=False)


class RazorpayCallbackViewTests(TestCase):
    def setUp(self):
        make_gateway("razorpay")
        self.order = make_order(order_id="order_r1", gateway="razorpay", gateway_order_id="order_Rzp1")
        self.url = reverse("payments:razorpay_callback") + "?orderId=order_r1"

    def test_valid_signature(self):
        with patch("payments.integrations.razorpay_orders.razorpay.Client"):
            resp = self.client.post(self.url, {
                "razorpay_order_id": "order_Rzp1",
                "razorpay_payment_id": "pay_1",
                "razorpay_signature": "sig",
            })
        self.assertRedirects(resp, "/payment/success?orderId=order_r1", fetch_redirect_response=False)
        self.assertEqual(Subscription.objects.count(), 1)

    def test_error_post_fails_order(self):
        resp = self.client.post(self.url, {
            "error[code]": "BAD_REQUEST_ERROR",
            "error[description]": "declined",
            "error[metadata]": json.dumps({"payment_id": "pay_1", "order_id": "order_Rzp1"}),
        })
        self.assertRedirects(resp, "/payment/failure?orderId=order_r1", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.FAILED)
        self.assertEqual(self.order.payment_details["error[description]"], "declined")

    def test_error_post_for_other_razorpay_order_is_rejected(self):
        resp = self.client.post(self.url, {
            "error[code]": "BAD_REQUEST_ERROR",
            "error[metadata]": json.dumps({"payment_id": "pay_9", "order_id": "order_Other"}),
        })
        self.assertRedirects(resp, "/payment/failure?orderId=order_r1", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def test_error_post_without_reference_is_rejected(self):
        resp = self.client.post(self.url, {"error[code]": "BAD_REQUEST_ERROR"})
        self.assertRedirects(resp, "/payment/failure?orderId=order_r1", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)


class PayPalReturnViewTests(TestCase):
    def setUp(self):
        make_gateway("paypal", sandbox=True)
        self.order = make_order(order_id="order_p1", gateway="paypal", gateway_order_id="PP-1")
        self.url = reverse("payments:paypal_return")

    def test_cancelled_marks_order_failed(self):
        with patch("payments.integrations.paypal.requests.post") as post:
            resp = self.client.get(self.url, {"orderId": "order_p1", "token": "PP-1", "cancelled": "1"})
        post.assert_not_called()
        self.assertRedirects(resp, "/payment/failure?orderId=order_p1", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.FAILED)

    def test_cancel_needs_matching_token(self):
        for params in ({"orderId": "order_p1", "cancelled": "1"},
                       {"orderId": "order_p1", "token": "PP-OTHER", "cancelled": "1"}):
            with self.subTest(params=params):
                resp = self.client.get(self.url, params)
                self.assertRedirects(resp, "/payment/failure?orderId=order_p1", fetch_redirect_response=False)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def test_capture_completed(self):
        from .helpers import FakeResponse
        captured = FakeResponse(201, {"id": "PP-1", "status": "COMPLETED", "payer": {"payer_id": "X1"}})
        with patch("payments.integrations.paypal.requests.post", return_value=captured):
            resp = self.client.get(self.url, {"orderId": "order_p1", "token": "PP-1"})
        self.assertRedirects(resp, "/payment/success?orderId=order_p1", fetch_redirect_response=False)
        self.assertEqual(Subscription.objects.get().order_id, "order_p1")


class StripeWebhookViewTests(TestCase):
    url = reverse("payments:stripe_webhook")

    def event(self, event_type="checkout.session.completed", payment_status="paid"):
        return {
            "id": "evt_1",
            "type": event_type,
            "data": {"object": {
                "id": "cs_test_1",
                "payment_status": payment_status,
                "metadata": {"orderId": "order_s1", "userId": "user_1", "planId": "plan_pro"},
            }},
        }

    def setUp(self):
        make_gateway("stripe")
        self.order = make_order(order_id="order_s1", gateway="stripe", gateway_order_id="cs_test_1", currency="USD")

    def post(self):
        return self.client.post(self.url, data=b"{}", content_type="application/json", HTTP_STRIPE_SIGNATURE="t=1,v1=x")

    def test_completed_session_settles(self):
        with patch("stripe.Webhook.construct_event", return_value=self.event()) as construct:
            resp = self.post()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"received": True})
        self.assertEqual(construct.call_args.args[1], "t=1,v1=x")
        self.assertEqual(construct.call_args.args[2], FULL_CREDENTIALS["stripe"]["webhookSecret"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.SUCCESS)
        self.assertEqual(Subscription.objects.count(), 1)

    def test_replayed_event_acknowledged_once(self):
        with patch("stripe.Webhook.construct_event", return_value=self.event()):
            self.post()
            resp = self.post()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(Subscription.objects.count(), 1)

    def test_unpaid_completion_is_ignored(self):
        with patch("stripe.Webhook.construct_event", return_value=self.event(payment_status="unpaid")):
            resp = self.post()
        self.assertEqual(resp.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def test_bad_signature_is_400(self):
        with patch("stripe.Webhook.construct_event", side_effect=ValueError("bad payload")):
            resp = self.post()
        self.assertEqual(resp.status_code, 400)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def signed_post(self, event, secret=None):
        body = json.dumps(event)
        timestamp = int(time.time())
        secret = secret or FULL_CREDENTIALS["stripe"]["webhookSecret"]
        signature = hmac.new(secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256).hexdigest()
        return self.client.post(
            self.url, data=body, content_type="application/json",
            HTTP_STRIPE_SIGNATURE=f"t={timestamp},v1={signature}",
        )

    def stripe_event(self):
        event = self.event()
        event.update({"object": "event", "api_version": "2024-06-20"})
        event["data"]["object"].update({
            "object": "checkout.session",
            "payment_intent": "pi_1",
            "amount_total": 99900,
            "currency": "usd",
        })
        return event

    def test_signed_delivery_settles(self):
        resp = self.signed_post(self.stripe_event())
        self.assertEqual(resp.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.SUCCESS)
        self.assertEqual(self.order.payment_details["payment_intent"], "pi_1")
        self.assertEqual(self.order.payment_details["amount_total"], 99900)
        self.assertEqual(Subscription.objects.count(), 1)

    def test_delivery_signed_with_other_secret_is_400(self):
        resp = self.signed_post(self.stripe_event(), secret="whsec_other")
        self.assertEqual(resp.status_code, 400)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.PENDING)

    def test_unconfigured_gateway_is_503(self):
        from payments.models import PaymentGateway
        PaymentGateway.objects.filter(name="stripe").delete()
        resp = self.post()
        self.assertEqual(resp.status_code, 503)

    def test_deactivated_gateway_still_settles(self):
        from payments.models import PaymentGateway
        PaymentGateway.objects.filter(name="stripe").update(is_active=False)
        resp = self.signed_post(self.stripe_event())
        self.assertEqual(resp.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Order.SUCCESS)


class GatewayInfoViewTests(TestCase):
    def test_enabled_gateways_lists_active_records(self):
        make_gateway("stripe")
        make_gateway("paypal", active=False)
        resp = self.client.get(reverse("payments:enabled_gateways"))
        self.assertEqual(resp.status_code, 200)
        names = [g["name"] for g in resp.json()["gateways"]]
        self.assertEqual(names, ["stripe"])

    def test_status_reports_presence_only(self):
        make_gateway("ccavenue", credentials={"merchantId": "M123", "workingKey": "secret-working-key"})
        resp = self.client.get(reverse("payments:gateway_status", args=["ccavenue"]))
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertFalse(data["configured"])
        self.assertEqual(data["source"], "store")
        self.assertEqual(data["fields"], {"merchantId": "Present", "accessCode": "Missing", "workingKey": "Present"})
        self.assertNotIn("secret-working-key", resp.content.decode())

    def test_status_for_unconfigured_gateway(self):
        data = self.client.get(reverse("payments:gateway_status", args=["paypal"])).json()
        self.assertFalse(data["configured"])
        self.assertIsNone(data["source"])

    def test_status_unknown_gateway_404(self):
        resp = self.client.get(reverse("payments:gateway_status", args=["bitcoin"]))
        self.assertEqual(resp.status_code, 404)


class SubscriptionsViewTests(TestCase):
    url = reverse("payments:subscriptions")

    def test_requires_user_id(self):
        self.assertEqual(self.client.get(self.url).status_code, 400)

    def test_lists_with_effective_status(self):
        order = make_order(status=Order.SUCCESS)
        now = timezone.now()
        Subscription.objects.create(
            user_id="user_1", plan_id="plan_basic", order=order,
            start_date=now - timedelta(days=60), end_date=now - timedelta(days=30),
        )
        Subscription.objects.create(
            user_id="user_1", plan_id="plan_pro", order=order,
            start_date=now, end_date=now + timedelta(days=30),
        )
        data = self.client.get(self.url, {"userId": "user_1"}).json()
        statuses = {s["planId"]: s["status"] for s in data["subscriptions"]}
        self.assertEqual(statuses, {"plan_basic": "expired", "plan_pro": "active"})
        self.assertEqual(data["currentPlanId"], "plan_pro")

    def test_no_subscriptions(self):
        data = self.client.get(self.url, {"userId": "nobody"}).json()
        self.assertEqual(data, {"subscriptions": [], "currentPlanId": None})


class ResultPageTests(TestCase):
    def test_success_page_shows_order(self):
        make_order(status=Order.SUCCESS)
        resp = self.client.get(reverse("payment_pages:success"), {"orderId": "order_123"})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "order_123")
        self.assertEqual(resp.context["order"].order_id, "order_123")

    def test_pages_render_without_order(self):
        for name in ("success", "failure", "cancel"):
            with self.subTest(page=name):
                resp = self.client.get(reverse(f"payment_pages:{name}"))
                self.assertEqual(resp.status_code, 200)
                self.assertIsNone(resp.context["order"])
