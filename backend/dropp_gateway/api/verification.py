"""
Status and Verification API Endpoints

Dropp status polling and Hedera on-chain verification.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

from ..clients.dropp_client import DroppClient
from ..clients.mirror_node import MirrorNodeClient
from ..clients.record_store import TransactionRecordClient
from ..dependencies import get_dropp_client, get_mirror_client, get_record_client, read_json_body
from ..exceptions import ValidationError
from ..models.transactions import VerificationResult
from ..services.verification_service import poll_status, record_verification, verify_on_chain

logger = logging.getLogger(__name__)

router = APIRouter()


def _verification_response(result: VerificationResult, **extra: Any) -> JSONResponse:
    status_code = 200 if result.verified else 400
    return JSONResponse(status_code=status_code, content=result.to_response(**extra))


@router.get("/status/{checkout_id}")
async def get_status_endpoint(
    checkout_id: str,
    merchant_id: Optional[str] = Query(None, alias="merchantId"),
    retries: Optional[int] = Query(None, ge=1, description="Polling attempts"),
    dropp_client: DroppClient = Depends(get_dropp_client)
) -> Dict[str, Any]:
    """
    Poll Dropp for the status of a checkout.

    Returns:
        {
            "success": true,
            "checkoutId": str,
            "merchantId": str,
            "status": "SUCCESS" | "WAIT" | "FAILED" | "unknown",
            "sdk": {...}  # raw Dropp response
        }
    """
    result = await poll_status(dropp_client, checkout_id, retries, merchant_id)
    return result.to_response()


@router.post("/verify-hedera")
async def verify_hedera_endpoint(
    request: Request,
    mirror_client: MirrorNodeClient = Depends(get_mirror_client),
    record_client: TransactionRecordClient = Depends(get_record_client)
) -> JSONResponse:
    """
    Verify a payment on Hedera.

    Request Body:
        {
            "transactionId": "0.0.XXXXX@1700000000.123456789",
            "checkoutId": "uuid",  # optional, echoed back
            "reference": "txn-123"  # optional, record to mark as verified
        }

    Returns:
        200 with the verification when verified, 400 with the reason otherwise
    """
    body = await read_json_body(request)
    if not isinstance(body, dict) or not body.get("transactionId"):
        raise ValidationError("Missing transactionId in request body")

    transaction_id = str(body["transactionId"])
    checkout_id = body.get("checkoutId")
    reference = body.get("reference")
    logger.info(f"Hedera verification request for {transaction_id}, checkoutId: {checkout_id or 'N/A'}")

    result = await verify_on_chain(mirror_client, transaction_id)
    if reference:
        await record_verification(record_client, str(reference), transaction_id, result)

    return _verification_response(result, transactionId=transaction_id, checkoutId=checkout_id)


@router.get("/verify-hedera/{transaction_id}")
async def verify_hedera_get_endpoint(
    transaction_id: str,
    mirror_client: MirrorNodeClient = Depends(get_mirror_client)
) -> JSONResponse:
    """
    Verify a Hedera transaction given in the path.

    Example:
        GET /api/payments/verify-hedera/0.0.XXXXX@1700000000.123456789
    """
    result = await verify_on_chain(mirror_client, transaction_id)
    return _verification_response(result, transactionId=transaction_id)
