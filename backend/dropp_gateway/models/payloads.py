"""
Pydantic Models for Dropp Payloads

PromiseToPay (wallet proof), Invoice (decoded from the proof), PaymentRequest
(checkout invoice terms), RefundData (refund terms) and DroppResponse
(standard Dropp API answer).
Field names follow the Dropp wire format through aliases.
"""
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


WIRE_CONFIG = {
    "populate_by_name": True,
    "extra": "allow",
}


class Signatures(BaseModel):
    """Capability-typed signature set carried by a proof."""
    payer: Optional[str] = None
    merchant: Optional[str] = None
    dropp: Optional[str] = None
    dropp_merchant: Optional[str] = Field(default=None, alias="droppMerchant")

    model_config = WIRE_CONFIG


class PromiseToPay(BaseModel):
    """
    Wallet-signed payment proof delivered to the callback.

    Untrusted until Dropp accepts it. Unknown wallet fields (purchaseURL,
    exchangeRate, ...) are kept as extras so the proof is forwarded intact.
    """
    payer: str
    invoice_bytes: str = Field(alias="invoiceBytes")
    time_stamp: Optional[Union[int, float, str]] = Field(default=None, alias="timeStamp")
    signatures: Signatures = Field(default_factory=Signatures)
    encoded_hh_transfer: Optional[str] = Field(default=None, alias="encodedHHTransfer")
    distribution_bytes: Optional[str] = Field(default=None, alias="distributionBytes")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")
    checkout_id: Optional[str] = Field(default=None, alias="checkoutId")

    model_config = WIRE_CONFIG

    def to_wire(self) -> Dict[str, Any]:
        """Proof as Dropp expects it (wallet field names, unset fields omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Invoice(BaseModel):
    """Merchant invoice embedded (base64 JSON) inside a proof."""
    merchant_account: str = Field(alias="merchantAccount")
    reference: str
    amount: Union[int, float]
    currency: str
    details: Optional[str] = None
    qr_code_uuid: Optional[str] = Field(default=None, alias="qrCodeUUID")
    success_url: Optional[str] = Field(default=None, alias="successURL")
    failure_url: Optional[str] = Field(default=None, alias="failureURL")

    model_config = WIRE_CONFIG


class PaymentRequest(BaseModel):
    """
    Payment-request payload sent to Dropp to create a checkout.

    Defaults:
    - description, thumbnail, title, type: empty string
    - acceptPaymentDelay, noOffers: False
    - payByCC, payByBank: True (fiat on-ramp offered when Dropp supports it)
    - submitToCallBack: POST
    """
    merchant_account: str = Field(alias="merchantAccount")
    amount: Union[int, float]
    currency: str
    reference: str
    description: str = ""
    thumbnail: str = ""
    url: str
    title: str = ""
    type: str = ""
    purchase_expiration: Optional[int] = Field(default=None, alias="purchaseExpiration")
    referral_fee: Optional[float] = Field(default=None, alias="referralFee")
    referral_account: Optional[str] = Field(default=None, alias="referralAccount")
    distribution: Optional[Union[str, Dict[str, float]]] = None
    accept_payment_delay: bool = Field(default=False, alias="acceptPaymentDelay")
    no_offers: bool = Field(default=False, alias="noOffers")
    pay_by_cc: bool = Field(default=True, alias="payByCC")
    pay_by_bank: bool = Field(default=True, alias="payByBank")
    success_url: str = Field(default="", alias="successURL")
    failure_url: str = Field(default="", alias="failureURL")
    success_message: Optional[str] = Field(default=None, alias="successMessage")
    submit_to_callback: Literal["POST", "GET"] = Field(default="POST", alias="submitToCallBack")

    model_config = {"populate_by_name": True, "extra": "forbid"}

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RefundData(BaseModel):
    """Refund payload sent to Dropp for a settled payment."""
    merchant_account: str = Field(alias="merchantAccount")
    amount: Union[int, float]
    time_stamp: int = Field(alias="timeStamp")  # epoch milliseconds
    payment_reference: Optional[str] = Field(default=None, alias="paymentReference")
    transaction_reference: Optional[str] = Field(default=None, alias="transactionReference")
    refund_ref: Optional[str] = Field(default=None, alias="refundRef")
    refund_reason: Optional[str] = Field(default=None, alias="refundReason")
    ip_address: Optional[str] = Field(default=None, alias="ipAddress")

    model_config = {"populate_by_name": True, "extra": "forbid"}

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class DroppResponse(BaseModel):
    """Standard response from Dropp API calls."""
    response_code: int = Field(alias="responseCode")
    errors: List[str] = Field(default_factory=list)
    data: Any = None
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")

    model_config = WIRE_CONFIG

    @property
    def ok(self) -> bool:
        return self.response_code == 0

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    def data_field(self, name: str) -> Any:
        """Read a key from a dict-shaped data section, None otherwise."""
        if isinstance(self.data, dict):
            return self.data.get(name)
        return None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
