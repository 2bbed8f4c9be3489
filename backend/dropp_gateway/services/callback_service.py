"""
Callback Reconciliation Service

Handles the wallet callback that follows a checkout. GET and POST transports
both end up in handle_callback().

Flow:
1. Validate the proof and decode its invoice (ValidationError, no external calls)
2. Mark the record payment_received; read back redirect URLs and signing key
3. Submit the proof to Dropp (single attempt, Dropp owns idempotency),
   directly or on behalf of a sub-merchant
4. Classify the outcome and record completed / failed (best-effort)
5. Build the redirect target for the outcome, if the record has one

Duplicate deliveries of the same proof repeat the bookkeeping calls and
produce the same classified outcome; record updates are last-write-wins.
"""
import json
import logging
from typing import Any, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..exceptions import ConfigurationError, DependencyError, ValidationError
from ..models.payloads import DroppResponse
from ..models.transactions import CallbackOutcome, PaymentStatus
from .identifiers import decode_invoice, parse_proof, resolve_transaction_id
from .transaction_service import sync_transaction

logger = logging.getLogger(__name__)

PAYMENT_FAILED_MESSAGE = "Payment processing failed"


def parse_query_proof(p2p: Optional[str]) -> Any:
    """
    Parse the p2p query parameter of a GET callback.

    Raises:
        ValidationError: parameter missing or not JSON
    """
    if not p2p:
        raise ValidationError("Missing p2p query parameter")
    try:
        return json.loads(p2p)
    except ValueError as e:
        raise ValidationError(f"Invalid p2p JSON: {e}") from e
    except RecursionError as e:
        raise ValidationError("Invalid p2p JSON: nested too deeply") from e


def require_parent_merchant_id() -> str:
    """
    Parent merchant account for sub-merchant submissions.

    Raises:
        ConfigurationError: DROPP_MERCHANT_ID is not set
    """
    if not settings.dropp_merchant_id:
        raise ConfigurationError("Sub-merchant payments require DROPP_MERCHANT_ID")
    return settings.dropp_merchant_id


def build_redirect_url(base_url: str, outcome: CallbackOutcome) -> str:
    """Append outcome metadata to a client redirect URL, keeping its own query."""
    parts = urlsplit(base_url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(outcome.redirect_params())
    return urlunsplit(parts._replace(query=urlencode(query)))


async def handle_callback(
    payload: Any,
    record_client: TransactionRecordClient,
    dropp_client: DroppClient,
    parent_merchant_id: Optional[str] = None
) -> CallbackOutcome:
    """
    Reconcile a wallet callback with its pending transaction.

    Args:
        payload: Raw promise-to-pay object (POST body or parsed p2p parameter)
        record_client: Transaction record store client
        dropp_client: Dropp adapter
        parent_merchant_id: When set, the proof pays a sub-merchant and is
            submitted on its behalf by this parent merchant

    Returns:
        CallbackOutcome; redirect_url is set when the record registered a
        success/failure URL for the outcome

    Raises:
        ValidationError: proof or invoice malformed
    """
    proof = parse_proof(payload)
    invoice = decode_invoice(proof)
    reference = invoice.reference
    checkout_id = invoice.qr_code_uuid or proof.checkout_id

    logger.info(
        f"Callback for reference {reference} from payer {proof.payer}: "
        f"{invoice.currency} {invoice.amount} to {invoice.merchant_account}"
    )

    # Redirect targets and signing key come from the record store, never from the request
    success_url = ""
    failure_url = ""
    signing_key = settings.dropp_merchant_signing_key
    received = await sync_transaction(
        record_client,
        reference,
        PaymentStatus.PAYMENT_RECEIVED,
        {
            "p2pData": proof.to_wire(),
            "invoiceData": invoice.model_dump(by_alias=True, exclude_none=True),
        }
    )
    if received is not None:
        success_url = received.success_url
        failure_url = received.failure_url
        signing_key = received.signing_key or signing_key

    response: Optional[DroppResponse] = None
    error: Optional[str] = None
    dependency_failed = False
    try:
        if parent_merchant_id:
            response = await dropp_client.submit_for_sub_merchant(proof, signing_key, parent_merchant_id)
        else:
            response = await dropp_client.submit(proof, signing_key)
    except DependencyError as e:
        logger.error(f"Payment submission failed for {reference}: {e.details}")
        error = PAYMENT_FAILED_MESSAGE
        dependency_failed = True

    is_success = response is not None and response.ok
    if response is not None and not response.ok:
        error = response.first_error or PAYMENT_FAILED_MESSAGE
        logger.warning(f"Dropp rejected payment for {reference}: responseCode={response.response_code}")

    candidate = resolve_transaction_id(proof, response) if is_success else None
    if candidate:
        logger.info(f"Hedera transaction id for {reference}: {candidate.value} (from {candidate.source})")

    outcome = CallbackOutcome(
        is_success=is_success,
        checkout_id=checkout_id,
        reference=reference,
        amount=invoice.amount,
        currency=invoice.currency,
        payer=proof.payer,
        payment_ref=_optional_str(response.data_field("paymentRef")) if response is not None else None,
        transaction_reference=_optional_str(response.data_field("transactionReference")) if response is not None else None,
        hedera_transaction_id=candidate.value if candidate else None,
        hedera_transaction_id_source=candidate.source if candidate else None,
        error=error,
        dependency_failed=dependency_failed,
        payment_response=response.to_wire() if response is not None else None,
        invoice=invoice.model_dump(by_alias=True, exclude_none=True),
    )

    if is_success:
        await sync_transaction(
            record_client,
            reference,
            PaymentStatus.COMPLETED,
            {
                "paymentResponse": outcome.payment_response,
                "hederaTransactionId": outcome.hedera_transaction_id,
                "hederaTransactionIdSource": outcome.hedera_transaction_id_source,
            }
        )
    else:
        await sync_transaction(
            record_client,
            reference,
            PaymentStatus.FAILED,
            {
                "paymentResponse": outcome.payment_response,
                "error": error,
            }
        )

    target = success_url if is_success else failure_url
    if target:
        outcome.redirect_url = build_redirect_url(target, outcome)
        logger.info(f"Redirecting {reference} to {outcome.status} URL")

    return outcome


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None
