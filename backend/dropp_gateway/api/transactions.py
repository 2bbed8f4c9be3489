"""
Transactions API Endpoints

Merchant transaction listing through Dropp.
"""
from fastapi import APIRouter, Depends, Query
from typing import Any, Dict
import logging

from ..clients.dropp_client import DroppClient
from ..dependencies import get_dropp_client
from ..services.transaction_service import list_merchant_transactions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/transactions/{merchant_id}")
async def get_merchant_transactions_endpoint(
    merchant_id: str,
    offset: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(10, ge=0, description="Max results (capped at 100)"),
    dropp_client: DroppClient = Depends(get_dropp_client)
) -> Dict[str, Any]:
    """
    Get Dropp transactions processed for a merchant.

    Path Parameters:
        merchant_id: Hedera account id of the merchant (e.g. 0.0.123456)

    Returns:
        {
            "success": true,
            "merchantId": str,
            "offset": int,
            "limit": int,
            "transactionCount": int,
            "transactions": [...]
        }
    """
    return await list_merchant_transactions(dropp_client, merchant_id, offset, limit)
