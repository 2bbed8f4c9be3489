"""
Transaction Service

Bookkeeping against the transaction record store and merchant transaction
listing through Dropp.

Record updates made after a checkout exists are best-effort: a failed update
is logged as a BestEffortFailure and never changes the outcome already
determined by the caller.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..exceptions import BestEffortFailure, DependencyError, UpstreamRejected, ValidationError
from ..models.transactions import PaymentStatus, RecordStoreResponse

logger = logging.getLogger(__name__)

MAX_TRANSACTIONS_PAGE = 100


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Best-effort Record Updates
# ============================================================================

async def sync_transaction(
    record_client: TransactionRecordClient,
    reference: str,
    status: Optional[PaymentStatus],
    fields: Optional[Dict[str, Any]] = None
) -> Optional[RecordStoreResponse]:
    """
    Merge fields (and optionally a new payment_status) into a record.

    Args:
        record_client: Record store client
        reference: Merchant reference (record transaction_id)
        status: New payment_status, or None to leave it untouched
        fields: Extra fields to merge

    Returns:
        RecordStoreResponse when the store reported success, None otherwise
    """
    payload = dict(fields or {})
    if status is not None:
        payload["payment_status"] = status.value

    try:
        response = await record_client.update_transaction(reference, payload)
    except DependencyError as e:
        failure = BestEffortFailure(
            f"Record update failed for {reference}",
            details={"status": payload.get("payment_status"), "cause": e.to_dict()}
        )
        logger.warning(f"{failure.message}: {e.message}", extra={"details": failure.details})
        return None

    if not response.ok:
        failure = BestEffortFailure(
            f"Record store rejected update for {reference}",
            details={"status": payload.get("payment_status"), "raw": response.raw}
        )
        logger.warning(failure.message, extra={"details": failure.details})
        return None

    logger.debug(f"Record {reference} updated: {sorted(payload)}")
    return response


# ============================================================================
# Merchant Transactions
# ============================================================================

async def list_merchant_transactions(
    dropp_client: DroppClient,
    merchant_id: str,
    offset: int = 0,
    limit: int = 10
) -> Dict[str, Any]:
    """
    Fetch a page of Dropp transactions for a merchant.

    Args:
        dropp_client: Dropp adapter
        merchant_id: Hedera account id of the merchant
        offset: Pagination start index
        limit: Page size, capped at 100

    Returns:
        {"merchantId", "offset", "limit", "transactionCount", "transactions"}

    Raises:
        ValidationError: missing merchant id or negative paging values
        UpstreamRejected: Dropp answered with a non-zero responseCode
    """
    if not merchant_id:
        raise ValidationError("Missing merchantId parameter")
    if offset < 0 or limit < 0:
        raise ValidationError("offset and limit must be non-negative", details={"offset": offset, "limit": limit})

    limit = min(limit, MAX_TRANSACTIONS_PAGE)
    request_parameters = {
        "userId": merchant_id,
        "offset": offset,
        "limit": limit,
    }

    logger.info(f"Fetching transactions for merchant: {merchant_id}, offset={offset}, limit={limit}")

    response = await dropp_client.get_transactions(
        request_parameters,
        settings.dropp_merchant_id,
        settings.dropp_merchant_signing_key
    )

    if not response.ok:
        logger.warning(f"Dropp rejected transaction listing for {merchant_id}: {response.errors}")
        raise UpstreamRejected(
            f"Failed to fetch transactions: {response.first_error or 'Unknown error'}",
            details={"responseCode": response.response_code}
        )

    transactions = response.data or []

    return {
        "success": True,
        "merchantId": merchant_id,
        "offset": offset,
        "limit": limit,
        "transactionCount": len(transactions),
        "transactions": transactions,
    }
