"""
Proof Decoding and Hedera Transaction ID Helpers

Pure functions: decode wallet proofs and invoices, pick the best Hedera
transaction identifier for a settled payment, and format identifiers for
the mirror node.

Hedera transaction id format: "0.0.XXXXX@1700000000.123456789"
(payer account id @ valid-start timestamp).
"""
import base64
import binascii
import json
import logging
from typing import Any, NamedTuple, Optional

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..models.payloads import DroppResponse, Invoice, PromiseToPay

logger = logging.getLogger(__name__)

# Timestamps with at most this many digits are seconds and get scaled to nanoseconds
SECONDS_TIMESTAMP_MAX_DIGITS = 10
NANOS_PER_SECOND = 1_000_000_000


# ============================================================================
# Proof / Invoice Decoding
# ============================================================================

def decode_base64_json(encoded: str) -> Any:
    """
    Decode a base64 string holding JSON.

    Raises:
        ValueError: not base64, not UTF-8, not JSON, or nested too deeply
    """
    try:
        raw = base64.b64decode(encoded)
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(str(e)) from e
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


def parse_proof(payload: Any) -> PromiseToPay:
    """
    Validate an inbound promise-to-pay payload.

    Raises:
        ValidationError: payload is not an object, or payer / invoiceBytes
            are missing or empty
    """
    if not isinstance(payload, dict) or not payload.get("payer") or not payload.get("invoiceBytes"):
        raise ValidationError("Invalid P2P object: missing required fields")

    try:
        return PromiseToPay.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid P2P object",
            details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def decode_invoice(proof: PromiseToPay) -> Invoice:
    """
    Decode the invoice embedded in a proof.

    Malformed input is a caller problem, never a system fault.

    Raises:
        ValidationError: invoiceBytes is not base64 JSON or lacks invoice fields
    """
    try:
        invoice_data = decode_base64_json(proof.invoice_bytes)
    except ValueError as e:
        logger.info(f"Failed to decode invoiceBytes from payer {proof.payer}: {e}")
        raise ValidationError("Invalid invoiceBytes encoding") from e

    if not isinstance(invoice_data, dict):
        raise ValidationError("Invalid invoiceBytes encoding")

    try:
        return Invoice.model_validate(invoice_data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invoice is missing required fields",
            details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def decode_transfer(encoded: str) -> Any:
    """
    Decode Dropp's encodedHHTransfer payload.

    Returns:
        Parsed JSON when the payload is JSON, the decoded text otherwise

    Raises:
        ValidationError: payload is not valid base64
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValidationError("Invalid base64 in encodedHHTransfer") from e

    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return text


# ============================================================================
# Transaction ID Extraction
# ============================================================================

class TransactionIdCandidate(NamedTuple):
    """Extracted identifier and where it came from."""
    value: str
    source: str  # proof, payment_response, encoded_transfer, payer_timestamp, payment_ref

    @property
    def is_chain_id(self) -> bool:
        """False for the payment reference fallback, which is only a tracking aid."""
        return self.source != "payment_ref"


def normalize_timestamp(timestamp: Any) -> str:
    """
    Scale a seconds timestamp (10 digits or fewer) to nanoseconds.

    Longer values are treated as already in the form the chain id expects
    and returned unchanged.
    """
    if isinstance(timestamp, float) and timestamp.is_integer():
        timestamp = int(timestamp)
    text = str(timestamp)
    if text.isdigit() and len(text) <= SECONDS_TIMESTAMP_MAX_DIGITS:
        return str(int(text) * NANOS_PER_SECOND)
    return text


def _from_encoded_transfer(encoded: str) -> Optional[str]:
    try:
        transfer = decode_base64_json(encoded)
    except ValueError as e:
        logger.warning(f"Failed to decode encodedHHTransfer: {e}")
        return None

    if not isinstance(transfer, dict):
        return None
    if transfer.get("transactionId"):
        return str(transfer["transactionId"])
    if transfer.get("from") and transfer.get("timestamp"):
        return f"{transfer['from']}@{transfer['timestamp']}"
    return None


def resolve_transaction_id(
    proof: Optional[PromiseToPay],
    response: Optional[DroppResponse] = None
) -> Optional[TransactionIdCandidate]:
    """
    Pick the Hedera transaction id for a payment, in strict priority order.

    1. transactionId on the proof
    2. transactionId on the Dropp response
    3. encodedHHTransfer: embedded transactionId, else from@timestamp
    4. payer@timeStamp from the proof (seconds scaled to nanoseconds)
    5. paymentRef from the response (not a chain id)

    Returns:
        TransactionIdCandidate, or None when nothing applies (unknown, not an error)
    """
    if proof is not None and proof.transaction_id:
        return TransactionIdCandidate(proof.transaction_id, "proof")

    if response is not None and response.transaction_id:
        return TransactionIdCandidate(response.transaction_id, "payment_response")

    if proof is not None and proof.encoded_hh_transfer:
        from_transfer = _from_encoded_transfer(proof.encoded_hh_transfer)
        if from_transfer:
            return TransactionIdCandidate(from_transfer, "encoded_transfer")

    if proof is not None and proof.payer and proof.time_stamp:
        return TransactionIdCandidate(
            f"{proof.payer}@{normalize_timestamp(proof.time_stamp)}", "payer_timestamp"
        )

    payment_ref = response.data_field("paymentRef") if response is not None else None
    if payment_ref:
        logger.warning(f"Using paymentRef instead of a Hedera transaction id: {payment_ref}")
        return TransactionIdCandidate(str(payment_ref), "payment_ref")

    return None


def extract_hedera_transaction_id(
    proof: Optional[PromiseToPay],
    response: Optional[DroppResponse] = None
) -> Optional[str]:
    """Best available transaction identifier, or None when unknown."""
    candidate = resolve_transaction_id(proof, response)
    return candidate.value if candidate else None


# ============================================================================
# Mirror Node Formatting
# ============================================================================

def is_hedera_transaction_id(identifier: str) -> bool:
    """accountId@timestamp form, as opposed to an opaque payment reference."""
    return "@" in identifier and "." in identifier


def format_mirror_node_id(transaction_id: str) -> str:
    """
    Convert "0.0.123@1700000000.123456789" to "0.0.123-1700000000-123456789".

    The account id keeps its dots; the separator and the timestamp's dot
    become dashes.
    """
    account_id, _, timestamp = transaction_id.partition("@")
    return f"{account_id}-{timestamp.replace('.', '-')}"
