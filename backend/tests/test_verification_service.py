import base64

import pytest

from dropp_gateway.exceptions import DependencyError, ValidationError
from dropp_gateway.models.payloads import DroppResponse
from dropp_gateway.services.verification_service import (
    classify_status,
    poll_status,
    record_verification,
    verify_on_chain,
)

HEDERA_ID = "0.0.500@1700000000.123456789"


def mirror_transaction(status="SUCCESS", **overrides):
    transaction = {
        "transaction_id": "0.0.500-1700000000-123456789",
        "consensus_timestamp": "1700000001.000000001",
        "memo_base64": base64.b64encode(b"order o-7").decode(),
        "receipt": {"status": status, "entity_id": "0.0.100"},
        "transfers": [{"account": "0.0.100", "amount": 1000}],
    }
    transaction.update(overrides)
    return transaction


# ============================================================================
# On-chain verification
# ============================================================================

@pytest.mark.anyio
async def test_unknown_transaction_is_not_verified(mirror_client):
    mirror_client.body = {"transactions": []}

    result = await verify_on_chain(mirror_client, HEDERA_ID)

    assert mirror_client.lookups == ["0.0.500-1700000000-123456789"]
    assert not result.verified
    assert result.error == "Transaction not found on Hedera"
    assert result.reason == "not_found"
    assert result.data is None


@pytest.mark.anyio
async def test_mirror_node_404_is_not_on_mirror_node(mirror_client):
    mirror_client.body = None

    result = await verify_on_chain(mirror_client, HEDERA_ID)

    assert not result.verified
    assert result.reason == "not_on_mirror_node"


@pytest.mark.anyio
async def test_failed_receipt_is_not_verified(mirror_client):
    mirror_client.body = {"transactions": [mirror_transaction(status="INSUFFICIENT_PAYER_BALANCE")]}

    result = await verify_on_chain(mirror_client, HEDERA_ID)

    assert not result.verified
    assert result.reason == "receipt_status"
    assert result.error == "Transaction status: INSUFFICIENT_PAYER_BALANCE"


@pytest.mark.anyio
async def test_settled_transaction_is_summarized(mirror_client):
    mirror_client.body = {"transactions": [mirror_transaction()]}

    result = await verify_on_chain(mirror_client, HEDERA_ID)

    assert result.verified
    assert result.type == "hedera_transaction"
    assert result.data["status"] == "SUCCESS"
    assert result.data["amount"] == 1000
    assert result.data["to"] == "0.0.100"
    assert result.data["memo"] == "order o-7"
    assert result.data["timestamp"] == "1700000001.000000001"


@pytest.mark.anyio
async def test_payment_reference_soft_passes_without_lookup(mirror_client):
    result = await verify_on_chain(mirror_client, "pref-9")

    assert result.verified
    assert result.type == "payment_reference"
    assert result.data["paymentReference"] == "pref-9"
    assert mirror_client.lookups == []


@pytest.mark.anyio
async def test_empty_identifier_is_rejected(mirror_client):
    with pytest.raises(ValidationError):
        await verify_on_chain(mirror_client, "")


@pytest.mark.anyio
async def test_mirror_node_outage_propagates(mirror_client, unavailable):
    mirror_client.error = unavailable

    with pytest.raises(DependencyError):
        await verify_on_chain(mirror_client, HEDERA_ID)


@pytest.mark.anyio
async def test_verification_is_recorded_when_verified(record_client, mirror_client):
    mirror_client.body = {"transactions": [mirror_transaction()]}
    result = await verify_on_chain(mirror_client, HEDERA_ID)

    await record_verification(record_client, "txn-001", HEDERA_ID, result)

    reference, update = record_client.updates[0]
    assert reference == "txn-001"
    assert update["hederaVerified"] is True
    assert update["hederaTransactionId"] == HEDERA_ID
    assert "payment_status" not in update


@pytest.mark.anyio
async def test_unverified_result_is_not_recorded(record_client, mirror_client):
    result = await verify_on_chain(mirror_client, HEDERA_ID)

    await record_verification(record_client, "txn-001", HEDERA_ID, result)

    assert record_client.updates == []


# ============================================================================
# Status polling
# ============================================================================

@pytest.mark.parametrize("data,expected", [
    ("SUCCESS", "SUCCESS"),
    ("WAIT", "WAIT"),
    ("FAILED", "FAILED"),
    ("EXPIRED", "unknown"),
    (None, "unknown"),
])
def test_classify_status(data, expected):
    assert classify_status(data) == expected


@pytest.mark.anyio
async def test_poll_status_reports_classified_status(dropp_client):
    result = await poll_status(dropp_client, "abc")

    body = result.to_response()
    assert body["status"] == "SUCCESS"
    assert body["checkoutId"] == "abc"
    assert body["merchantId"] == "0.0.999"
    assert body["sdk"]["responseCode"] == 0
    assert dropp_client.polls == [("abc", 3)]


@pytest.mark.anyio
async def test_poll_status_unknown_data(dropp_client):
    dropp_client.status_response = DroppResponse(responseCode=0, data={"weird": True})

    result = await poll_status(dropp_client, "abc", merchant_id="0.0.5")

    assert result.status == "unknown"
    assert result.merchant_id == "0.0.5"


@pytest.mark.anyio
@pytest.mark.parametrize("requested,attempts", [(0, 1), (5, 5), (500, 10)])
async def test_poll_status_clamps_retries(dropp_client, requested, attempts):
    await poll_status(dropp_client, "abc", retries=requested)

    assert dropp_client.polls == [("abc", attempts)]


@pytest.mark.anyio
async def test_poll_status_requires_checkout_id(dropp_client):
    with pytest.raises(ValidationError):
        await poll_status(dropp_client, "")

    assert dropp_client.polls == []


@pytest.mark.anyio
@pytest.mark.parametrize("data", [{"status": "x"}, ["SUCCESS"]])
async def test_poll_status_structured_data_is_unknown(dropp_client, data):
    dropp_client.status_response = DroppResponse(responseCode=1, data=data)

    result = await poll_status(dropp_client, "abc")

    assert result.status == "unknown"
    assert result.sdk["data"] == data
