"""
Signature Service for Dropp Merchant Requests

Implements HMAC-SHA256 request signing keyed by the merchant signing key.
Dropp itself verifies payer and merchant signatures; this service only
produces the merchant signature attached to outbound requests.
"""
import hmac
import hashlib
import json
from typing import Dict, Any


def create_canonical_json(data: Dict[str, Any]) -> str:
    """
    Create canonical JSON representation for signing.

    Ensures consistent serialization:
    - Sorted keys
    - No whitespace
    - UTF-8 encoding
    """
    return json.dumps(data, sort_keys=True, separators=(',', ':'))


def sign_payload(payload: Dict[str, Any], signing_key: str) -> str:
    """
    Sign a request payload with the merchant signing key.

    Args:
        payload: Request body as dictionary (without the signature itself)
        signing_key: Merchant signing key

    Returns:
        Hex-encoded HMAC-SHA256 digest
    """
    canonical_data = create_canonical_json(payload)

    signature_bytes = hmac.new(
        signing_key.encode('utf-8'),
        canonical_data.encode('utf-8'),
        hashlib.sha256
    ).digest()

    return signature_bytes.hex()
