"""
Debug API Endpoints

Inspection helpers for integration work: raw checkout status and decoding of
Dropp's encodedHHTransfer payload.
"""
from fastapi import APIRouter, Depends, Request
from typing import Any, Dict
import logging

from ..clients.dropp_client import DroppClient
from ..dependencies import get_dropp_client, read_json_body
from ..exceptions import ValidationError
from ..services.identifiers import decode_transfer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/debug/{uuid}")
async def debug_checkout_endpoint(
    uuid: str,
    dropp_client: DroppClient = Depends(get_dropp_client)
) -> Dict[str, Any]:
    """Single status poll for a checkout UUID, returned raw."""
    response = await dropp_client.wait_for_completion(uuid, 1)
    return {"success": True, "uuid": uuid, "status": response.to_wire()}


@router.post("/debug/decode-transfer")
async def decode_transfer_endpoint(request: Request) -> Dict[str, Any]:
    """
    Decode an encodedHHTransfer payload.

    Request Body:
        {"encodedHHTransfer": "base64"} or {"p2pObj": {"encodedHHTransfer": "base64"}}

    Returns:
        {"success": true, "decoded": object | str, "raw": str}
    """
    body = await read_json_body(request)
    if not isinstance(body, dict):
        body = {}

    encoded = body.get("encodedHHTransfer")
    p2p_obj = body.get("p2pObj")
    if not encoded and isinstance(p2p_obj, dict):
        encoded = p2p_obj.get("encodedHHTransfer")

    if not encoded or not isinstance(encoded, str):
        raise ValidationError("Missing encodedHHTransfer in body or p2pObj.")

    decoded = decode_transfer(encoded)
    logger.debug(f"Decoded encodedHHTransfer: {decoded}")

    return {"success": True, "decoded": decoded, "raw": encoded}
