"""
Refund Service

Refunds a settled Dropp payment and annotates the merchant record.

Flow:
1. Validate amount, payment identifiers and merchant account
2. Submit the signed refund to Dropp (single attempt)
3. Annotate the transaction record when a reference is given (best-effort)
"""
import logging
import time
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..exceptions import UpstreamRejected, ValidationError
from ..models.payloads import RefundData
from ..models.refunds import RefundRequest
from .transaction_service import sync_transaction, utc_now_iso

logger = logging.getLogger(__name__)


def parse_refund_request(payload: Any) -> RefundRequest:
    """
    Parse a raw refund body or query mapping.

    Raises:
        ValidationError: not an object or ill-typed fields
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return RefundRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid refund request",
            details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def build_refund_data(request: RefundRequest, ip_address: Optional[str] = None) -> RefundData:
    """
    Validate a refund request and assemble the Dropp refund payload.

    Raises:
        ValidationError: non-positive amount, no payment identifier, or no
            merchant account anywhere
    """
    if request.amount is None or request.amount <= 0:
        raise ValidationError("Refund amount must be positive", details={"field": "amount"})
    if not request.payment_reference and not request.transaction_reference:
        raise ValidationError(
            "Missing paymentReference or transactionReference",
            details={"field": "paymentReference"}
        )

    merchant_account = request.merchant_account or settings.dropp_merchant_id
    if not merchant_account:
        raise ValidationError("Missing required field: merchantAccount", details={"field": "merchantAccount"})

    return RefundData(
        merchant_account=merchant_account,
        amount=request.amount,
        time_stamp=int(time.time() * 1000),
        payment_reference=request.payment_reference,
        transaction_reference=request.transaction_reference,
        refund_ref=request.refund_ref or request.reference,
        refund_reason=request.refund_reason,
        ip_address=ip_address,
    )


async def refund_payment(
    request: RefundRequest,
    dropp_client: DroppClient,
    record_client: TransactionRecordClient,
    ip_address: Optional[str] = None
) -> Dict[str, Any]:
    """
    Refund a settled payment.

    Returns:
        {"success", "reference", "amount", "paymentReference",
         "transactionReference", "refund"}

    Raises:
        ValidationError: invalid refund request
        DependencyError: Dropp unreachable
        UpstreamRejected: Dropp refused the refund
    """
    refund = build_refund_data(request, ip_address)
    logger.info(
        f"Refund requested: {refund.amount} for payment {refund.payment_reference or refund.transaction_reference}"
    )

    response = await dropp_client.submit_refund(refund, settings.dropp_merchant_signing_key)

    if not response.ok:
        logger.warning(f"Dropp rejected refund: responseCode={response.response_code}, errors={response.errors}")
        raise UpstreamRejected(
            f"Refund failed: {response.first_error or 'Unknown error'}",
            details={"responseCode": response.response_code}
        )

    if request.reference:
        await sync_transaction(
            record_client,
            request.reference,
            None,
            {
                "refunded": True,
                "refundAmount": refund.amount,
                "refundedAt": utc_now_iso(),
                "refundResponse": response.to_wire(),
            }
        )

    logger.info(f"Refund accepted for {refund.payment_reference or refund.transaction_reference}")

    return {
        "success": True,
        "reference": request.reference,
        "amount": refund.amount,
        "paymentReference": refund.payment_reference,
        "transactionReference": refund.transaction_reference,
        "refund": response.to_wire(),
    }
