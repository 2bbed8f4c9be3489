"""
Pydantic Transaction Models

Lifecycle status of a checkout transaction, the record store's answer, and
the classified results of callback reconciliation, status polling and
on-chain verification.
"""
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel


class PaymentStatus(str, Enum):
    """
    Transaction lifecycle as persisted in the record store.

    Forward-only: initiated -> dropp_checkout_created -> payment_received ->
    completed. failed is terminal from any state.
    """
    INITIATED = "initiated"
    CHECKOUT_CREATED = "dropp_checkout_created"
    PAYMENT_RECEIVED = "payment_received"
    COMPLETED = "completed"
    FAILED = "failed"


class RecordStoreResponse(BaseModel):
    """Answer of the transaction record store to a create or update call."""
    ok: bool
    raw: Any = None
    data: Optional[Dict[str, Any]] = None

    def _data_str(self, key: str) -> str:
        value = (self.data or {}).get(key)
        # Django primary keys arrive as integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value if isinstance(value, str) else ""

    @property
    def transaction_id(self) -> str:
        return self._data_str("transaction_id")

    @property
    def success_url(self) -> str:
        return self._data_str("successUrl")

    @property
    def failure_url(self) -> str:
        return self._data_str("failureUrl")

    @property
    def signing_key(self) -> str:
        return self._data_str("signingKey")

    @property
    def merchant_id(self) -> str:
        return self._data_str("merchantId")


class CallbackOutcome(BaseModel):
    """
    Classified result of one wallet callback.

    Carries everything needed to redirect the shopper or answer with JSON.
    """
    is_success: bool
    checkout_id: Optional[str] = None
    reference: str
    amount: Union[int, float]
    currency: str
    payer: str
    payment_ref: Optional[str] = None
    transaction_reference: Optional[str] = None
    hedera_transaction_id: Optional[str] = None
    hedera_transaction_id_source: Optional[str] = None
    error: Optional[str] = None
    dependency_failed: bool = False
    payment_response: Optional[Dict[str, Any]] = None
    invoice: Dict[str, Any]
    redirect_url: Optional[str] = None

    @property
    def status(self) -> Literal["success", "failed"]:
        return "success" if self.is_success else "failed"

    def redirect_params(self) -> List[Tuple[str, str]]:
        """Outcome metadata appended to the client redirect URL."""
        params = []
        if self.checkout_id:
            params.append(("checkoutId", self.checkout_id))
        params.extend([
            ("status", self.status),
            ("reference", self.reference),
            ("amount", str(self.amount)),
            ("currency", self.currency),
            ("payer", self.payer),
        ])
        if self.payment_ref:
            params.append(("paymentRef", self.payment_ref))
        if self.transaction_reference:
            params.append(("transactionReference", self.transaction_reference))
        if self.hedera_transaction_id:
            params.append(("hederaTransactionId", self.hedera_transaction_id))
        if self.error:
            params.append(("error", self.error))
        return params

    def to_response(self) -> Dict[str, Any]:
        """JSON body used when no redirect target is known."""
        return {
            "success": self.is_success,
            "paymentStatus": self.status,
            "checkoutId": self.checkout_id,
            "reference": self.reference,
            "amount": self.amount,
            "currency": self.currency,
            "payer": self.payer,
            "paymentRef": self.payment_ref,
            "transactionReference": self.transaction_reference,
            "hederaTransactionId": self.hedera_transaction_id,
            "error": self.error,
            "paymentResponse": self.payment_response,
            "invoiceData": self.invoice,
        }


class StatusResult(BaseModel):
    """Classified payment-network status of a checkout."""
    checkout_id: str
    merchant_id: Optional[str] = None
    status: Literal["SUCCESS", "WAIT", "FAILED", "unknown"]
    sdk: Optional[Dict[str, Any]] = None

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "checkoutId": self.checkout_id,
            "merchantId": self.merchant_id,
            "status": self.status,
            "sdk": self.sdk,
        }


class VerificationResult(BaseModel):
    """
    Outcome of on-chain verification.

    reason values:
    - not_found: mirror node has no matching transaction
    - not_on_mirror_node: mirror node answered 404 (pending or not a chain id)
    - receipt_status: transaction exists but its receipt is not SUCCESS
    """
    verified: bool
    error: Optional[str] = None
    type: Optional[Literal["hedera_transaction", "payment_reference"]] = None
    reason: Optional[Literal["not_found", "not_on_mirror_node", "receipt_status"]] = None
    data: Optional[Dict[str, Any]] = None

    def to_response(self, **extra: Any) -> Dict[str, Any]:
        return {
            "success": self.verified,
            "verified": self.verified,
            "type": self.type,
            "error": self.error,
            "reason": self.reason,
            "data": self.data,
            **extra,
        }
