"""
Payments API Endpoints

Checkout creation and the wallet callback (POST body or GET query), for the
merchant itself and for sub-merchants collected by it.

Both callback transports delegate to the same reconciliation service; they
only differ in how the proof arrives.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Any, Dict, Optional
import logging

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..dependencies import get_dropp_client, get_record_client, read_json_body
from ..models.transactions import CallbackOutcome
from ..services.callback_service import handle_callback, parse_query_proof, require_parent_merchant_id
from ..services.checkout_service import create_checkout, parse_checkout_request

logger = logging.getLogger(__name__)

router = APIRouter()

CALLBACK_PATH = "/api/payments/post-callback"


def _default_callback_url(request: Request) -> str:
    base_url = settings.public_base_url or str(request.base_url)
    return f"{base_url.rstrip('/')}{CALLBACK_PATH}"


def _callback_response(outcome: CallbackOutcome):
    if outcome.redirect_url:
        return RedirectResponse(outcome.redirect_url, status_code=302)
    status_code = 502 if outcome.dependency_failed else 200
    return JSONResponse(status_code=status_code, content=outcome.to_response())


@router.post("/checkout")
async def create_checkout_endpoint(
    request: Request,
    record_client: TransactionRecordClient = Depends(get_record_client),
    dropp_client: DroppClient = Depends(get_dropp_client)
) -> Dict[str, Any]:
    """
    Create a Dropp checkout.

    Request Body:
        {
            "amount": 10,
            "currency": "USD",
            "user_id": str, "store_id": str, "service_id": str, "emailId": str,
            "merchantAccount": "0.0.XXXXXX",  # optional, defaults to DROPP_MERCHANT_ID
            "successUrl": str, "failureUrl": str,  # optional client redirects
            "additional_details": {...},  # optional, flattened into the description
            ...
        }

    Returns:
        {
            "success": true,
            "checkoutId": str,
            "redirectUrl": str,
            "qrCodeUrl": str | null,
            "reference": str,
            "message": str
        }
    """
    checkout_request = parse_checkout_request(await read_json_body(request))
    result = await create_checkout(
        checkout_request,
        record_client,
        dropp_client,
        _default_callback_url(request)
    )
    return result.to_response()


@router.post("/post-callback")
async def post_callback_endpoint(
    request: Request,
    record_client: TransactionRecordClient = Depends(get_record_client),
    dropp_client: DroppClient = Depends(get_dropp_client)
):
    """
    Wallet callback with the promise-to-pay in the JSON body.

    Request Body:
        {
            "payer": "0.0.XXXXX",
            "invoiceBytes": "base64 JSON invoice",
            "timeStamp": 1700000000,
            "signatures": {"payer": "..."},
            "encodedHHTransfer": "..."  # optional
        }

    Returns:
        302 to the transaction's success/failure URL, or the outcome as JSON
    """
    payload = await read_json_body(request)
    outcome = await handle_callback(payload, record_client, dropp_client)
    return _callback_response(outcome)


@router.get("/post-callback")
@router.get("/callback")
async def get_callback_endpoint(
    p2p: Optional[str] = Query(None, description="URL-encoded JSON promise-to-pay"),
    record_client: TransactionRecordClient = Depends(get_record_client),
    dropp_client: DroppClient = Depends(get_dropp_client)
):
    """
    Wallet callback with the promise-to-pay in the p2p query parameter.

    Example:
        GET /api/payments/post-callback?p2p=%7B%22payer%22%3A...%7D
    """
    payload = parse_query_proof(p2p)
    outcome = await handle_callback(payload, record_client, dropp_client)
    return _callback_response(outcome)


# ============================================================================
# Sub-merchant payments
# ============================================================================

@router.get("/sub-merchant/authorize-url")
async def sub_merchant_authorize_url_endpoint(
    dropp_client: DroppClient = Depends(get_dropp_client)
) -> Dict[str, Any]:
    """
    Portal URL where a merchant authorizes this (parent) merchant to collect
    payments on its behalf.

    Returns:
        {"success": true, "authorizeUrl": str}
    """
    parent_merchant_id = require_parent_merchant_id()
    return {"success": True, "authorizeUrl": dropp_client.sub_merchant_authorization_url(parent_merchant_id)}


@router.post("/sub-merchant/post-callback")
async def sub_merchant_post_callback_endpoint(
    request: Request,
    record_client: TransactionRecordClient = Depends(get_record_client),
    dropp_client: DroppClient = Depends(get_dropp_client)
):
    """
    Wallet callback for a checkout paying a sub-merchant (proof in the JSON body).

    The proof is submitted on behalf of the sub-merchant by the configured
    parent merchant (DROPP_MERCHANT_ID).
    """
    parent_merchant_id = require_parent_merchant_id()
    payload = await read_json_body(request)
    outcome = await handle_callback(payload, record_client, dropp_client, parent_merchant_id)
    return _callback_response(outcome)


@router.get("/sub-merchant/callback")
@router.get("/callbackForSubMerchant")
async def sub_merchant_get_callback_endpoint(
    p2p: Optional[str] = Query(None, description="URL-encoded JSON promise-to-pay"),
    record_client: TransactionRecordClient = Depends(get_record_client),
    dropp_client: DroppClient = Depends(get_dropp_client)
):
    """Wallet callback for a sub-merchant checkout (proof in the p2p query parameter)."""
    parent_merchant_id = require_parent_merchant_id()
    payload = parse_query_proof(p2p)
    outcome = await handle_callback(payload, record_client, dropp_client, parent_merchant_id)
    return _callback_response(outcome)
