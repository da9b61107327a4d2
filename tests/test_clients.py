"""
Unit tests for the payment gateway and identity collaborators.
"""

import hashlib
import hmac
import json
import time
import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from toolmatch.core.clients import identity
from toolmatch.core.clients import stripe as billing
from toolmatch.core.errors import ConfigurationError, UpstreamServiceError
from toolmatch.core.models import SubscriptionTier

SECRET = "whsec_test"
CLIENT_ID = "1234.apps.googleusercontent.com"


def sign(payload: bytes, timestamp: int, secret: str = SECRET) -> str:
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class TestConstructEvent(unittest.TestCase):

    def setUp(self):
        self.payload = json.dumps({"type": "checkout.session.completed", "data": {"object": {}}}).encode()
        self.now = int(time.time())

    def test_valid_signature(self):
        event = billing.construct_event(self.payload, sign(self.payload, self.now), SECRET)
        self.assertEqual(event["type"], "checkout.session.completed")

    def test_wrong_secret(self):
        with self.assertRaises(UpstreamServiceError):
            billing.construct_event(self.payload, sign(self.payload, self.now, "other"), SECRET)

    def test_tampered_payload(self):
        header = sign(self.payload, self.now)
        with self.assertRaises(UpstreamServiceError):
            billing.construct_event(self.payload + b" ", header, SECRET)

    def test_stale_timestamp(self):
        with self.assertRaises(UpstreamServiceError):
            billing.construct_event(self.payload, sign(self.payload, self.now - 1000), SECRET)

    def test_missing_or_malformed_header(self):
        for header in (None, "", "v1=abc", "t=123", "t=abc,v1=def"):
            with self.assertRaises(UpstreamServiceError):
                billing.construct_event(self.payload, header, SECRET)


class TestSubscriptionChange(unittest.TestCase):

    def test_checkout_completed_upgrades(self):
        event = {"type": "checkout.session.completed", "data": {"object": {"id": "cs_1", "customer_email": "u@example.com"}}}
        self.assertEqual(billing.subscription_change(event), ("u@example.com", SubscriptionTier.PREMIUM))

    def test_subscription_deleted_downgrades(self):
        event = {
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "metadata": {"customer_email": "u@example.com"}}},
        }
        self.assertEqual(billing.subscription_change(event), ("u@example.com", SubscriptionTier.FREE))

    def test_deleted_without_email_is_ignored(self):
        event = {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_1", "metadata": {}}}}
        self.assertIsNone(billing.subscription_change(event))

    def test_other_events_ignored(self):
        self.assertIsNone(billing.subscription_change({"type": "invoice.paid", "data": {"object": {}}}))


class TestCreateCheckoutSession(unittest.IsolatedAsyncioTestCase):

    def _patch_client(self, create):
        client = MagicMock()
        client.v1.checkout.sessions.create_async = create
        return patch.object(billing.stripe, "StripeClient", return_value=client)

    async def test_returns_session_id(self):
        create = AsyncMock(return_value=SimpleNamespace(id="cs_test_123"))
        with self._patch_client(create) as client_class:
            session_id = await billing.create_checkout_session(
                "u@example.com", " sk_test_abc\n", "price_1", "https://quiz.example.com/"
            )

        self.assertEqual(session_id, "cs_test_123")
        self.assertEqual(client_class.call_args.args[0], "sk_test_abc")
        params = create.call_args.kwargs["params"]
        self.assertEqual(params["mode"], "subscription")
        self.assertEqual(params["line_items"], [{"price": "price_1", "quantity": 1}])
        self.assertEqual(params["customer_email"], "u@example.com")
        self.assertEqual(params["metadata"], {"customer_email": "u@example.com"})
        self.assertEqual(params["cancel_url"], "https://quiz.example.com/")
        self.assertTrue(params["success_url"].startswith("https://quiz.example.com/success.html"))

    async def test_stripe_error_raises(self):
        create = AsyncMock(side_effect=billing.stripe.AuthenticationError("Invalid API Key provided"))
        with self._patch_client(create):
            with self.assertRaises(UpstreamServiceError):
                await billing.create_checkout_session("u@example.com", "sk_bad", "price_1", "https://x")


class TestVerifyIdToken(unittest.IsolatedAsyncioTestCase):

    @classmethod
    def setUpClass(cls):
        cls.private_pem = cls._private_pem()
        public = jwk.construct(cls.private_pem, "RS256").public_key().to_dict()
        cls.keys = {"keys": [{**public, "kid": "test-key"}]}

    @staticmethod
    def _private_pem(key=None):
        key = key or rsa.generate_private_key(public_exponent=65537, key_size=2048)
        return key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode()

    def _token(self, pem=None, **overrides):
        claims = {
            "iss": "https://accounts.google.com",
            "aud": CLIENT_ID,
            "sub": "1001",
            "email": "u@example.com",
            "email_verified": True,
            "name": "Robin",
            "iat": int(time.time()),
            "exp": int(time.time()) + 600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, pem or self.private_pem, algorithm="RS256", headers={"kid": "test-key"})

    async def test_reads_email_and_name(self):
        user = await identity.verify_id_token(self._token(), CLIENT_ID, self.keys)
        self.assertEqual(user.email, "u@example.com")
        self.assertEqual(user.name, "Robin")

    async def test_forged_signature_rejected(self):
        forged = self._token(pem=self._private_pem())
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(forged, CLIENT_ID, self.keys)

    async def test_unsigned_payload_rejected(self):
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token("xx.eyJlbWFpbCI6InZAeC5pbyJ9.forged", CLIENT_ID, self.keys)

    async def test_wrong_audience_rejected(self):
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(self._token(aud="someone-else"), CLIENT_ID, self.keys)

    async def test_wrong_issuer_rejected(self):
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(self._token(iss="https://evil.example.com"), CLIENT_ID, self.keys)

    async def test_expired_rejected(self):
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(self._token(exp=int(time.time()) - 60), CLIENT_ID, self.keys)

    async def test_missing_or_unverified_email(self):
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(self._token(email=None), CLIENT_ID, self.keys)
        with self.assertRaises(UpstreamServiceError):
            await identity.verify_id_token(self._token(email_verified=False), CLIENT_ID, self.keys)

    async def test_client_id_required(self):
        with self.assertRaises(ConfigurationError):
            await identity.verify_id_token(self._token(), "", self.keys)

    async def test_keys_fetched_from_provider(self):
        def handler(request):
            self.assertEqual(str(request.url), identity.GOOGLE_CERTS_URL)
            return httpx.Response(200, json=self.keys)

        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        with patch.object(identity.httpx, "AsyncClient", side_effect=factory):
            user = await identity.verify_id_token(self._token(), CLIENT_ID)
        self.assertEqual(user.email, "u@example.com")

    async def test_key_fetch_failure(self):
        real_client = httpx.AsyncClient

        def factory(**kwargs):
            return real_client(transport=httpx.MockTransport(lambda r: httpx.Response(503)), **kwargs)

        with patch.object(identity.httpx, "AsyncClient", side_effect=factory):
            with self.assertRaises(UpstreamServiceError):
                await identity.fetch_signing_keys()


if __name__ == "__main__":
    unittest.main()
