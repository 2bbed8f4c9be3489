"""
Refunds API Endpoints

Refund of settled Dropp payments, as a JSON POST or through the GET refund
callback used by the merchant back office.
"""
from fastapi import APIRouter, Depends, Query, Request
from typing import Any, Dict, Optional
import logging

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..dependencies import get_dropp_client, get_record_client, read_json_body
from ..services.refund_service import parse_refund_request, refund_payment

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post("/refund")
async def refund_endpoint(
    request: Request,
    dropp_client: DroppClient = Depends(get_dropp_client),
    record_client: TransactionRecordClient = Depends(get_record_client)
) -> Dict[str, Any]:
    """
    Refund a settled payment.

    Request Body:
        {
            "amount": 5,
            "paymentReference": "pref-1",      # or transactionReference
            "transactionReference": "tref-1",
            "refundRef": str, "refundReason": str,  # optional
            "reference": "txn-001"  # optional, record to annotate
        }

    Returns:
        {"success": true, "reference", "amount", "paymentReference",
         "transactionReference", "refund": {...}}
    """
    refund_request = parse_refund_request(await read_json_body(request))
    return await refund_payment(refund_request, dropp_client, record_client, _client_ip(request))


@router.get("/refund-callback")
async def refund_callback_endpoint(
    request: Request,
    amount: Optional[str] = Query(None),
    payment_ref: Optional[str] = Query(None, alias="paymentRef"),
    transaction_reference: Optional[str] = Query(None, alias="transactionReference"),
    reference: Optional[str] = Query(None),
    dropp_client: DroppClient = Depends(get_dropp_client),
    record_client: TransactionRecordClient = Depends(get_record_client)
) -> Dict[str, Any]:
    """
    Refund through query parameters.

    Example:
        GET /api/payments/refund-callback?paymentRef=pref-1&transactionReference=tref-1&amount=5
    """
    refund_request = parse_refund_request({
        "amount": amount,
        "paymentRef": payment_ref,
        "transactionReference": transaction_reference,
        "reference": reference,
    })
    return await refund_payment(refund_request, dropp_client, record_client, _client_ip(request))
