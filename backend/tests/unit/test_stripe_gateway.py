"""
Unit tests for the Stripe gateway.

Tests configuration checks and the translation of Stripe failures.
"""
from unittest.mock import patch

import pytest
import stripe

from swiftlink.core.config import settings
from swiftlink.core.errors import InvalidCheckoutSession, InvalidSignature, Misconfigured, UpstreamFailure
from swiftlink.services.stripe_gateway import StripeGateway


@pytest.fixture
def gateway():
    return StripeGateway(timeout_seconds=15)


class TestConfiguration:

    def test_missing_secret_key(self, gateway):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", None):
            with pytest.raises(Misconfigured):
                gateway.ensure_configured()

    def test_http_client_uses_timeout(self, gateway):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"), \
                patch("swiftlink.services.stripe_gateway.stripe.default_http_client", None), \
                patch("swiftlink.services.stripe_gateway.stripe.RequestsClient") as mock_client:
            gateway.ensure_configured()
            gateway.ensure_configured()

        mock_client.assert_called_once_with(timeout=15)


class TestCheckoutSessionRetrieval:

    @patch("stripe.checkout.Session.retrieve")
    def test_retrieve_expands_subscription(self, mock_retrieve, gateway):
        mock_retrieve.return_value = {"id": "cs_test_123"}

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            gateway.retrieve_checkout_session("cs_test_123")

        mock_retrieve.assert_called_once_with("cs_test_123", expand=["subscription"])

    @patch("stripe.checkout.Session.retrieve")
    def test_unknown_session(self, mock_retrieve, gateway):
        mock_retrieve.side_effect = stripe.InvalidRequestError("No such checkout.session", "id")

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            with pytest.raises(InvalidCheckoutSession):
                gateway.retrieve_checkout_session("cs_missing")

    @patch("stripe.checkout.Session.retrieve")
    def test_network_failure(self, mock_retrieve, gateway):
        mock_retrieve.side_effect = stripe.APIConnectionError("Request timed out")

        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            with pytest.raises(UpstreamFailure):
                gateway.retrieve_checkout_session("cs_test_123")


class TestWebhookVerification:

    def test_missing_signature(self, gateway):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            with pytest.raises(InvalidSignature) as exc_info:
                gateway.construct_webhook_event(b"{}", None)
        assert exc_info.value.message == "Missing stripe-signature header"

    def test_missing_webhook_secret(self, gateway):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"), \
                patch.object(settings, "stripe_webhook_secret", ""):
            with pytest.raises(Misconfigured):
                gateway.construct_webhook_event(b"{}", "t=1,v1=abc")

    def test_bad_signature(self, gateway):
        with patch("swiftlink.services.stripe_gateway.stripe.api_key", "sk_test_123"):
            with pytest.raises(InvalidSignature) as exc_info:
                gateway.construct_webhook_event(b'{"id": "evt_1"}', "t=1,v1=deadbeef")
        assert exc_info.value.message == "Invalid signature"
