"""
Transaction Record Client

Talks to the merchant's order/transaction record store (Django backend).
The record store is the single source of truth for transaction state; this
client never caches what it reads.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..exceptions import DependencyError
from ..models.transactions import RecordStoreResponse

logger = logging.getLogger(__name__)

# status_code value the record store reports on success
RECORD_STORE_SUCCESS = 200


class TransactionRecordClient:
    """
    HTTP client for the transaction record store.

    Transport failures and non-JSON answers raise DependencyError. A JSON
    answer is always returned as a RecordStoreResponse whose ok flag tells
    whether the store reported success; each call site decides whether a
    failure is fatal or best-effort.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"}
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def create_transaction(self, payload: Dict[str, Any]) -> RecordStoreResponse:
        """
        Create a transaction record.

        Returns:
            RecordStoreResponse; data holds the created record including
            transaction_id (the merchant reference)
        """
        return await self._send("POST", "create_transaction/", payload)

    async def update_transaction(self, transaction_id: str, payload: Dict[str, Any]) -> RecordStoreResponse:
        """
        Merge-patch a transaction record.

        Args:
            transaction_id: Merchant reference of the transaction
            payload: Fields to merge into the record

        Returns:
            RecordStoreResponse exposing successUrl, failureUrl, signingKey
            and merchantId of the updated record
        """
        body = {"transaction_id": transaction_id, **payload}
        return await self._send("PUT", "update_transaction/", body)

    async def _send(self, method: str, path: str, body: Dict[str, Any]) -> RecordStoreResponse:
        url = f"{self.base_url}/{path}"
        try:
            response = await self._client.request(method, url, json=body)
            content = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Record store {method} {path} failed: {e}")
            raise DependencyError(
                "Transaction record store unavailable",
                details={"operation": path.rstrip("/"), "error": str(e)}
            ) from e
        except ValueError as e:
            logger.error(f"Record store {method} {path} returned non-JSON (HTTP {response.status_code})")
            raise DependencyError(
                "Transaction record store returned an invalid response",
                details={"operation": path.rstrip("/"), "http_status": response.status_code}
            ) from e

        if not isinstance(content, dict):
            return RecordStoreResponse(ok=False, raw=content, data=None)

        data = content.get("data")
        return RecordStoreResponse(
            ok=content.get("status_code") == RECORD_STORE_SUCCESS,
            raw=content,
            data=data if isinstance(data, dict) else None
        )
