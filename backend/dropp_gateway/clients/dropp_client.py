"""
Dropp Payment Network Adapter

Wraps the Dropp merchant API: checkout (UUID) generation, promise-to-pay
submission (own account or on behalf of a sub-merchant), refunds, bounded
completion polling and merchant transaction listing.

Contract relied on by the checkout lifecycle:
- responseCode == 0 signals success on every call
- submit() is safe to call more than once with the same proof; Dropp
  recognizes or rejects a duplicate, this adapter never retries on its own
- wait_for_completion() terminates after `retries` attempts
"""
import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..exceptions import DependencyError
from ..models.payloads import DroppResponse, PaymentRequest, PromiseToPay, RefundData
from ..services.signature_service import sign_payload

logger = logging.getLogger(__name__)

CHECKOUTS_PATH = "payer/v1/checkouts"
PAYMENTS_PATH = "merchant/v1/payments"
SUB_MERCHANT_PAYMENTS_PATH = "merchant/v1/sub-merchant/payments"
REFUNDS_PATH = "merchant/v1/refunds"
SUB_MERCHANT_AUTHORIZATION_PATH = "sub-merchant/authorize"
TRANSACTIONS_PATH = "merchant/v1/transactions"

# Statuses after which polling stops early
TERMINAL_STATUSES = {"SUCCESS", "FAILED"}


class DroppClient:
    """HTTP adapter for the Dropp payment network."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
        portal_url: str = ""
    ):
        self.base_url = base_url.rstrip("/")
        self.portal_url = portal_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json", "User-Agent": "dropp-gateway/0.1.0"}
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ========================================================================
    # Checkout
    # ========================================================================

    async def generate_checkout(self, payment_request: PaymentRequest) -> DroppResponse:
        """
        Create a checkout and get its UUID.

        Returns:
            DroppResponse with data {"uuid": ..., "link": ...} on success
        """
        return await self._request("POST", CHECKOUTS_PATH, payment_request.to_wire())

    async def wait_for_completion(
        self,
        uuid: str,
        retries: int = 3,
        interval_seconds: float = 2.0
    ) -> DroppResponse:
        """
        Poll the checkout status until it is terminal or retries run out.

        Args:
            uuid: Checkout UUID
            retries: Maximum number of status requests (at least one is made)
            interval_seconds: Pause between attempts

        Returns:
            Last DroppResponse; data holds SUCCESS, WAIT or FAILED
        """
        attempts = max(1, retries)
        response = None
        for attempt in range(1, attempts + 1):
            response = await self._request("GET", f"{CHECKOUTS_PATH}/{uuid}/status")
            logger.debug(f"Status poll {attempt}/{attempts} for {uuid}: {response.data}")
            if isinstance(response.data, str) and response.data in TERMINAL_STATUSES:
                break
            if attempt < attempts:
                await asyncio.sleep(interval_seconds)
        return response

    # ========================================================================
    # Payments
    # ========================================================================

    async def submit(self, proof: PromiseToPay, signing_key: str) -> DroppResponse:
        """
        Submit a wallet proof for settlement.

        The proof is forwarded unchanged apart from the merchant signature.

        Returns:
            DroppResponse with data {"paymentRef", "transactionReference", ...}
        """
        return await self._request("POST", PAYMENTS_PATH, _signed_proof(proof, signing_key))

    async def submit_for_sub_merchant(
        self,
        proof: PromiseToPay,
        signing_key: str,
        parent_merchant_id: str
    ) -> DroppResponse:
        """
        Submit a wallet proof on behalf of a sub-merchant.

        The parent merchant signs with its own key; the sub-merchant must have
        authorized the parent (see sub_merchant_authorization_url).
        """
        body = _signed_proof(proof, signing_key)
        body["parentMerchantAccountId"] = parent_merchant_id
        return await self._request("POST", SUB_MERCHANT_PAYMENTS_PATH, body)

    def sub_merchant_authorization_url(self, parent_merchant_id: str) -> str:
        """Portal page where a merchant authorizes the parent to collect on its behalf."""
        query = urlencode({"parentMerchantAccountId": parent_merchant_id})
        return f"{self.portal_url}/{SUB_MERCHANT_AUTHORIZATION_PATH}?{query}"

    async def submit_refund(self, refund: RefundData, signing_key: str) -> DroppResponse:
        """
        Refund a settled payment, fully or partially.

        Returns:
            DroppResponse; data describes the refund transaction
        """
        body = refund.to_wire()
        body["signature"] = sign_payload(body, signing_key)
        return await self._request("POST", REFUNDS_PATH, body)

    async def get_transactions(
        self,
        request_parameters: Dict[str, Any],
        parent_merchant_id: str,
        signing_key: str
    ) -> DroppResponse:
        """
        Fetch merchant transactions (paginated).

        Args:
            request_parameters: {"userId": merchant account, "offset": int, "limit": int}
            parent_merchant_id: Parent merchant account id
            signing_key: Parent merchant signing key
        """
        body = {
            "parentMerchantAccountId": parent_merchant_id,
            **request_parameters,
        }
        body["signature"] = sign_payload(body, signing_key)
        return await self._request("POST", TRANSACTIONS_PATH, body)

    async def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> DroppResponse:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._client.request(method, url, json=body)
            content = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Dropp {method} {path} failed: {e}")
            raise DependencyError(
                "Dropp payment network unavailable",
                details={"operation": path, "error": str(e)}
            ) from e
        except ValueError as e:
            logger.error(f"Dropp {method} {path} returned non-JSON (HTTP {response.status_code})")
            raise DependencyError(
                "Dropp returned an invalid response",
                details={"operation": path, "http_status": response.status_code}
            ) from e

        try:
            return DroppResponse.model_validate(content)
        except ValueError as e:
            logger.error(f"Dropp {method} {path} returned an unexpected body: {content}")
            raise DependencyError(
                "Dropp returned an invalid response",
                details={"operation": path, "http_status": response.status_code}
            ) from e


def _signed_proof(proof: PromiseToPay, signing_key: str) -> Dict[str, Any]:
    """Proof as received plus the merchant signature over payer, invoiceBytes and timeStamp."""
    body = proof.to_wire()
    signatures = dict(body.get("signatures") or {})
    signatures["merchant"] = sign_payload(
        {"payer": proof.payer, "invoiceBytes": proof.invoice_bytes, "timeStamp": proof.time_stamp},
        signing_key
    )
    body["signatures"] = signatures
    return body
