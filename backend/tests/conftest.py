import base64
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from dropp_gateway.config import settings
from dropp_gateway.dependencies import get_dropp_client, get_mirror_client, get_record_client
from dropp_gateway.exceptions import DependencyError
from dropp_gateway.main import app
from dropp_gateway.models.payloads import DroppResponse
from dropp_gateway.models.transactions import RecordStoreResponse
from dropp_gateway.services.signature_service import sign_payload


# ============================================================================
# Payload helpers
# ============================================================================

def encode_json(data) -> str:
    return base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")


def encode_raw(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def make_invoice(**overrides):
    invoice = {
        "merchantAccount": "0.0.100",
        "reference": "txn-001",
        "amount": 10,
        "currency": "USD",
        "qrCodeUUID": "abc",
    }
    invoice.update(overrides)
    return invoice


def make_proof(invoice=None, **overrides):
    proof = {
        "payer": "0.0.200",
        "invoiceBytes": encode_json(invoice or make_invoice()),
        "timeStamp": 1700000000,
        "signatures": {"payer": "payer-signature"},
    }
    proof.update(overrides)
    return proof


def signature_matches(payload, signature, signing_key) -> bool:
    return hmac.compare_digest(sign_payload(payload, signing_key), signature)


# ============================================================================
# Fake collaborators
# ============================================================================

class FakeRecordClient:
    """In-memory record store recording every call."""

    def __init__(self):
        self.created = []
        self.updates = []
        self.create_response = RecordStoreResponse(
            ok=True, raw={"status_code": 200}, data={"transaction_id": "txn-001"}
        )
        self.create_error = None
        self.update_data = {
            "transaction_id": "txn-001",
            "successUrl": "",
            "failureUrl": "",
            "signingKey": "",
        }
        self.update_ok = True
        self.update_error = None

    async def create_transaction(self, payload):
        self.created.append(payload)
        if self.create_error:
            raise self.create_error
        return self.create_response

    async def update_transaction(self, transaction_id, payload):
        self.updates.append((transaction_id, payload))
        if self.update_error:
            raise self.update_error
        return RecordStoreResponse(
            ok=self.update_ok,
            raw={"status_code": 200 if self.update_ok else 500},
            data=dict(self.update_data)
        )

    def statuses(self):
        return [payload.get("payment_status") for _, payload in self.updates]


class FakeDroppClient:
    """Dropp adapter stub recording every call."""

    def __init__(self):
        self.checkout_requests = []
        self.submissions = []
        self.polls = []
        self.listings = []
        self.parent_merchants = []
        self.refunds = []
        self.checkout_response = DroppResponse(
            responseCode=0, data={"uuid": "abc", "link": "https://pay/abc"}
        )
        self.submit_response = DroppResponse(
            responseCode=0, data={"paymentRef": "pref-1", "transactionReference": "tref-1"}
        )
        self.submit_error = None
        self.status_response = DroppResponse(responseCode=0, data="SUCCESS")
        self.status_error = None
        self.transactions_response = DroppResponse(responseCode=0, data=[{"id": 1}, {"id": 2}])
        self.refund_response = DroppResponse(responseCode=0, data={"refundRef": "rref-1"})

    async def generate_checkout(self, payment_request):
        self.checkout_requests.append(payment_request)
        return self.checkout_response

    async def submit(self, proof, signing_key):
        self.submissions.append((proof, signing_key))
        if self.submit_error:
            raise self.submit_error
        return self.submit_response

    async def submit_for_sub_merchant(self, proof, signing_key, parent_merchant_id):
        self.parent_merchants.append(parent_merchant_id)
        return await self.submit(proof, signing_key)

    def sub_merchant_authorization_url(self, parent_merchant_id):
        return f"https://portal.test/sub-merchant/authorize?parentMerchantAccountId={parent_merchant_id}"

    async def submit_refund(self, refund, signing_key):
        self.refunds.append((refund, signing_key))
        return self.refund_response

    async def wait_for_completion(self, uuid, retries=3, interval_seconds=2.0):
        self.polls.append((uuid, retries))
        if self.status_error:
            raise self.status_error
        return self.status_response

    async def get_transactions(self, request_parameters, parent_merchant_id, signing_key):
        self.listings.append((request_parameters, parent_merchant_id, signing_key))
        return self.transactions_response

    def call_count(self):
        return (
            len(self.checkout_requests) + len(self.submissions) + len(self.polls)
            + len(self.listings) + len(self.refunds)
        )


class FakeMirrorClient:
    """Mirror node stub returning a canned body (None means HTTP 404)."""

    def __init__(self):
        self.lookups = []
        self.body = {"transactions": []}
        self.error = None

    async def get_transaction_by_formatted_id(self, formatted_id):
        self.lookups.append(formatted_id)
        if self.error:
            raise self.error
        return self.body


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def gateway_settings(monkeypatch):
    """Deterministic settings for every test."""
    monkeypatch.setattr(settings, "dropp_merchant_id", "0.0.999")
    monkeypatch.setattr(settings, "dropp_merchant_signing_key", "default-signing-key")
    monkeypatch.setattr(settings, "public_base_url", "https://gateway.example.com")
    monkeypatch.setattr(settings, "status_poll_retries", 3)
    monkeypatch.setattr(settings, "status_poll_max_retries", 10)
    monkeypatch.setattr(settings, "status_poll_interval_seconds", 0.0)
    return settings


@pytest.fixture
def record_client():
    return FakeRecordClient()


@pytest.fixture
def dropp_client():
    return FakeDroppClient()


@pytest.fixture
def mirror_client():
    return FakeMirrorClient()


@pytest.fixture
def api_client(record_client, dropp_client, mirror_client):
    """TestClient wired to the fake collaborators."""
    app.dependency_overrides[get_record_client] = lambda: record_client
    app.dependency_overrides[get_dropp_client] = lambda: dropp_client
    app.dependency_overrides[get_mirror_client] = lambda: mirror_client
    client = TestClient(app, raise_server_exceptions=False)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def unavailable():
    """A transport-level failure as raised by the HTTP clients."""
    return DependencyError("Upstream unavailable", details={"error": "connection refused"})
