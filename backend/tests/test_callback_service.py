from urllib.parse import parse_qs, urlsplit

import pytest

from dropp_gateway.exceptions import ValidationError
from dropp_gateway.models.payloads import DroppResponse
from dropp_gateway.services.callback_service import handle_callback, parse_query_proof

from conftest import make_invoice, make_proof


def query_of(url):
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


@pytest.mark.anyio
@pytest.mark.parametrize("missing", ["payer", "invoiceBytes"])
async def test_incomplete_proof_makes_no_external_calls(record_client, dropp_client, missing):
    payload = make_proof()
    del payload[missing]

    with pytest.raises(ValidationError):
        await handle_callback(payload, record_client, dropp_client)

    assert record_client.updates == []
    assert dropp_client.call_count() == 0


@pytest.mark.anyio
async def test_malformed_invoice_is_validation_error(record_client, dropp_client):
    payload = make_proof(invoiceBytes="@@not-base64@@")

    with pytest.raises(ValidationError):
        await handle_callback(payload, record_client, dropp_client)

    assert dropp_client.submissions == []


@pytest.mark.anyio
async def test_successful_payment_completes_record(record_client, dropp_client):
    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert outcome.is_success
    assert outcome.checkout_id == "abc"
    assert outcome.payment_ref == "pref-1"
    assert outcome.transaction_reference == "tref-1"
    assert outcome.hedera_transaction_id == "0.0.200@1700000000000000000"
    assert outcome.redirect_url is None
    assert record_client.statuses() == ["payment_received", "completed"]

    _, completed = record_client.updates[1]
    assert completed["hederaTransactionId"] == "0.0.200@1700000000000000000"
    assert completed["hederaTransactionIdSource"] == "payer_timestamp"


@pytest.mark.anyio
async def test_payment_received_update_carries_proof_and_invoice(record_client, dropp_client):
    await handle_callback(make_proof(), record_client, dropp_client)

    reference, received = record_client.updates[0]
    assert reference == "txn-001"
    assert received["p2pData"]["payer"] == "0.0.200"
    assert received["invoiceData"]["reference"] == "txn-001"


@pytest.mark.anyio
async def test_success_redirects_with_outcome_metadata(record_client, dropp_client):
    record_client.update_data["successUrl"] = "https://shop.example.com/paid?order=7"

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert outcome.redirect_url.startswith("https://shop.example.com/paid?")
    params = query_of(outcome.redirect_url)
    assert params["order"] == "7"
    assert params["status"] == "success"
    assert params["checkoutId"] == "abc"
    assert params["reference"] == "txn-001"
    assert params["amount"] == "10"
    assert params["currency"] == "USD"
    assert params["payer"] == "0.0.200"
    assert params["paymentRef"] == "pref-1"
    assert params["hederaTransactionId"] == "0.0.200@1700000000000000000"


@pytest.mark.anyio
async def test_rejected_payment_redirects_to_failure_url(record_client, dropp_client):
    record_client.update_data["failureUrl"] = "https://shop.example.com/failed"
    dropp_client.submit_response = DroppResponse(responseCode=1, errors=["Insufficient funds"], data={})

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert not outcome.is_success
    assert query_of(outcome.redirect_url)["status"] == "failed"
    assert query_of(outcome.redirect_url)["error"] == "Insufficient funds"
    assert outcome.hedera_transaction_id is None
    assert record_client.statuses() == ["payment_received", "failed"]


@pytest.mark.anyio
async def test_failure_without_failure_url_answers_json(record_client, dropp_client):
    record_client.update_data["successUrl"] = "https://shop.example.com/paid"
    dropp_client.submit_response = DroppResponse(responseCode=1, data={})

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert outcome.redirect_url is None
    body = outcome.to_response()
    assert body["paymentStatus"] == "failed"
    assert body["reference"] == "txn-001"


@pytest.mark.anyio
async def test_submission_transport_failure_is_failed_outcome(record_client, dropp_client, unavailable):
    dropp_client.submit_error = unavailable

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert not outcome.is_success
    assert outcome.dependency_failed
    assert outcome.error == "Payment processing failed"
    assert record_client.statuses()[-1] == "failed"


@pytest.mark.anyio
async def test_record_store_signing_key_wins(record_client, dropp_client):
    record_client.update_data["signingKey"] = "merchant-specific-key"

    await handle_callback(make_proof(), record_client, dropp_client)

    assert dropp_client.submissions[0][1] == "merchant-specific-key"


@pytest.mark.anyio
async def test_default_signing_key_when_record_store_is_down(record_client, dropp_client, unavailable):
    record_client.update_error = unavailable

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    assert outcome.is_success
    assert dropp_client.submissions[0][1] == "default-signing-key"
    assert outcome.redirect_url is None


@pytest.mark.anyio
async def test_failed_completion_update_keeps_success(record_client, dropp_client):
    record_client.update_data["successUrl"] = "https://shop.example.com/paid"
    record_client.update_ok = False

    outcome = await handle_callback(make_proof(), record_client, dropp_client)

    # Rejected updates yield no redirect targets, but the payment stays successful
    assert outcome.is_success
    assert outcome.redirect_url is None


@pytest.mark.anyio
async def test_redirect_targets_come_from_record_not_proof(record_client, dropp_client):
    invoice = make_invoice(successURL="https://attacker.example.com/")

    outcome = await handle_callback(make_proof(invoice=invoice), record_client, dropp_client)

    assert outcome.redirect_url is None


@pytest.mark.anyio
async def test_duplicate_delivery_has_same_outcome(record_client, dropp_client):
    proof = make_proof()

    first = await handle_callback(proof, record_client, dropp_client)
    second = await handle_callback(proof, record_client, dropp_client)

    assert first.is_success == second.is_success
    assert first.hedera_transaction_id == second.hedera_transaction_id
    assert len(dropp_client.submissions) == 2
    assert record_client.statuses() == ["payment_received", "completed"] * 2


@pytest.mark.anyio
async def test_checkout_id_falls_back_to_proof(record_client, dropp_client):
    invoice = make_invoice(qrCodeUUID=None)

    outcome = await handle_callback(
        make_proof(invoice=invoice, checkoutId="from-proof"), record_client, dropp_client
    )

    assert outcome.checkout_id == "from-proof"


def test_query_proof_must_be_present_and_json():
    with pytest.raises(ValidationError):
        parse_query_proof(None)
    with pytest.raises(ValidationError):
        parse_query_proof("{payer:")

    assert parse_query_proof('{"payer": "0.0.200"}') == {"payer": "0.0.200"}

def test_deeply_nested_query_proof_is_validation_error():
    with pytest.raises(ValidationError):
        parse_query_proof("[" * 200000 + "]" * 200000)


@pytest.mark.anyio
async def test_sub_merchant_proof_is_submitted_for_parent(record_client, dropp_client):
    outcome = await handle_callback(make_proof(), record_client, dropp_client, parent_merchant_id="0.0.999")

    assert outcome.is_success
    assert dropp_client.parent_merchants == ["0.0.999"]
    assert record_client.statuses() == ["payment_received", "completed"]


@pytest.mark.anyio
async def test_own_account_proof_has_no_parent(record_client, dropp_client):
    await handle_callback(make_proof(), record_client, dropp_client)

    assert dropp_client.parent_merchants == []
    assert len(dropp_client.submissions) == 1
