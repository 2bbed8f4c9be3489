"""
Hedera Mirror Node Client

Read-only queries against the Hedera mirror node used for independent
confirmation of settlement.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..exceptions import DependencyError

logger = logging.getLogger(__name__)


class MirrorNodeClient:
    """Chain verifier backed by the Hedera mirror node REST API."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_transaction_by_formatted_id(self, formatted_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch a transaction by mirror-node formatted id (0.0.123-1700000000-123456789).

        Returns:
            Mirror node body ({"transactions": [...]}) or None when the
            mirror node answers 404

        Raises:
            DependencyError: transport failure, other HTTP error or non-JSON body
        """
        url = f"{self.base_url}/transactions/{formatted_id}"
        logger.debug(f"Mirror node lookup: {url}")

        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Mirror node request failed for {formatted_id}: {e}")
            raise DependencyError(
                "Hedera mirror node unavailable",
                details={"transaction_id": formatted_id, "error": str(e)}
            ) from e

        if response.status_code == 404:
            return None

        if response.status_code >= 400:
            logger.error(f"Mirror node returned HTTP {response.status_code} for {formatted_id}")
            raise DependencyError(
                "Hedera mirror node rejected the lookup",
                details={"transaction_id": formatted_id, "http_status": response.status_code}
            )

        try:
            return response.json()
        except ValueError as e:
            raise DependencyError(
                "Hedera mirror node returned an invalid response",
                details={"transaction_id": formatted_id}
            ) from e
