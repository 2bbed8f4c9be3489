"""
Status and Verification Service

On-demand checks usable any time after checkout creation:
- poll_status: bounded polling of the Dropp checkout status
- verify_on_chain: independent confirmation on the Hedera mirror node
"""
import base64
import binascii
import logging
from typing import Any, Dict, Optional

from ..clients.dropp_client import DroppClient
from ..clients.mirror_node import MirrorNodeClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..exceptions import ValidationError
from ..models.transactions import StatusResult, VerificationResult
from .identifiers import format_mirror_node_id, is_hedera_transaction_id
from .transaction_service import sync_transaction, utc_now_iso

logger = logging.getLogger(__name__)

KNOWN_STATUSES = {"SUCCESS", "WAIT", "FAILED"}

# Receipt status of a settled Hedera transaction
HEDERA_SUCCESS_STATUS = "SUCCESS"

NOT_FOUND_MESSAGE = "Transaction not found on Hedera"
NOT_ON_MIRROR_NODE_MESSAGE = "Transaction not found on Hedera Mirror Node (may be pending or payment reference)"


# ============================================================================
# Status Polling
# ============================================================================

def classify_status(data: Any) -> str:
    """Map raw Dropp status data to SUCCESS, WAIT, FAILED or unknown."""
    if isinstance(data, str) and data in KNOWN_STATUSES:
        return data
    return "unknown"


async def poll_status(
    dropp_client: DroppClient,
    checkout_id: str,
    retries: Optional[int] = None,
    merchant_id: Optional[str] = None
) -> StatusResult:
    """
    Poll Dropp for a checkout's status.

    Args:
        dropp_client: Dropp adapter
        checkout_id: Checkout UUID
        retries: Attempts, defaults to settings.status_poll_retries and is
            clamped to 1..settings.status_poll_max_retries
        merchant_id: Echoed back, defaults to the configured merchant

    Raises:
        ValidationError: missing checkout id
        DependencyError: Dropp unreachable
    """
    if not checkout_id:
        raise ValidationError("Missing checkoutId parameter")

    attempts = settings.status_poll_retries if retries is None else retries
    attempts = max(1, min(attempts, settings.status_poll_max_retries))

    response = await dropp_client.wait_for_completion(
        checkout_id, attempts, settings.status_poll_interval_seconds
    )
    status = classify_status(response.data)

    if status == "unknown":
        logger.warning(f"Unknown status for {checkout_id}: {response.data}")
    else:
        logger.info(f"Status for {checkout_id}: {status}")

    return StatusResult(
        checkout_id=checkout_id,
        merchant_id=merchant_id or settings.dropp_merchant_id,
        status=status,
        sdk=response.to_wire(),
    )


# ============================================================================
# On-chain Verification
# ============================================================================

def _decode_memo(memo_base64: Optional[str]) -> Optional[str]:
    if not memo_base64:
        return None
    try:
        return base64.b64decode(memo_base64).decode("utf-8", errors="replace")
    except binascii.Error:
        return None


def _summarize(transaction: Dict[str, Any]) -> Dict[str, Any]:
    receipt = transaction.get("receipt") or {}
    transfers = transaction.get("transfers") or []
    return {
        "transactionId": transaction.get("transaction_id"),
        "status": receipt.get("status"),
        "amount": transfers[0].get("amount") if transfers else None,
        "entityId": receipt.get("entity_id"),
        "timestamp": transaction.get("consensus_timestamp"),
        "to": receipt.get("entity_id"),
        "memo": _decode_memo(transaction.get("memo_base64")),
    }


async def verify_on_chain(mirror_client: MirrorNodeClient, identifier: str) -> VerificationResult:
    """
    Verify a payment on the Hedera mirror node.

    accountId@timestamp identifiers are looked up and must carry a SUCCESS
    receipt. Anything else is an opaque payment reference and soft-passes:
    it is recorded, not proven.

    Returns:
        VerificationResult; not-found and non-SUCCESS receipts are results,
        not exceptions

    Raises:
        ValidationError: empty identifier
        DependencyError: mirror node unreachable or erroring
    """
    if not identifier:
        raise ValidationError("Missing transactionId")

    if not is_hedera_transaction_id(identifier):
        logger.info(f"Treating {identifier} as a payment reference, not a Hedera transaction id")
        return VerificationResult(
            verified=True,
            type="payment_reference",
            data={
                "paymentReference": identifier,
                "timestamp": utc_now_iso(),
                "note": "Payment reference recorded. For full on-chain verification, "
                        "a Hedera Transaction ID (0.0.XXXXX@timestamp) is needed.",
            },
        )

    formatted_id = format_mirror_node_id(identifier)
    logger.info(f"Verifying Hedera transaction {identifier} (formatted: {formatted_id})")

    body = await mirror_client.get_transaction_by_formatted_id(formatted_id)
    if body is None:
        logger.info(f"Mirror node has no record of {identifier} yet")
        return VerificationResult(
            verified=False,
            error=NOT_ON_MIRROR_NODE_MESSAGE,
            type="hedera_transaction",
            reason="not_on_mirror_node",
        )

    transactions = body.get("transactions") if isinstance(body, dict) else None
    if not transactions:
        logger.info(f"Transaction not found on Hedera: {identifier}")
        return VerificationResult(
            verified=False,
            error=NOT_FOUND_MESSAGE,
            type="hedera_transaction",
            reason="not_found",
        )

    transaction = transactions[0]
    receipt_status = (transaction.get("receipt") or {}).get("status")
    if receipt_status != HEDERA_SUCCESS_STATUS:
        logger.warning(f"Transaction {identifier} has receipt status {receipt_status}")
        return VerificationResult(
            verified=False,
            error=f"Transaction status: {receipt_status}",
            type="hedera_transaction",
            reason="receipt_status",
            data=transaction,
        )

    logger.info(f"Transaction verified on Hedera: {identifier}")
    return VerificationResult(
        verified=True,
        type="hedera_transaction",
        data=_summarize(transaction),
    )


async def record_verification(
    record_client: TransactionRecordClient,
    reference: str,
    identifier: str,
    result: VerificationResult
) -> None:
    """Attach a successful verification to the transaction record (best-effort)."""
    if not result.verified:
        return
    await sync_transaction(
        record_client,
        reference,
        None,
        {
            "hederaVerified": True,
            "hederaTransactionId": identifier,
            "hederaVerificationData": result.data,
        }
    )
