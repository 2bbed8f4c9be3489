"""
Pydantic Checkout Models

Inbound checkout request and the result handed back to the storefront.
"""
from typing import Any, Dict, Optional, Union
from pydantic import AliasChoices, BaseModel, Field


class CheckoutRequest(BaseModel):
    """
    Checkout creation request from the storefront.

    Every field is optional at parse time: presence of the mandatory
    correlation fields is checked by the checkout service so the error names
    the first missing field.
    """
    amount: Optional[Union[int, float]] = None
    currency: Optional[str] = "USD"
    additional_details: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
    store_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("store_id", "storeId"))
    service_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("service_id", "serviceId"))
    email_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("emailId", "email_id"))
    merchant_account: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("merchantAccount", "merchantId")
    )
    signing_key: Optional[str] = Field(default=None, validation_alias=AliasChoices("signingKey", "signing_key"))
    thumbnail: Optional[str] = None
    distribution: Optional[Union[str, Dict[str, float]]] = None
    callback_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("callbackUrl", "callback_url"))
    success_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("successUrl", "success_url"))
    failure_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("failureUrl", "failure_url"))
    title: Optional[str] = None
    type: Optional[str] = None
    success_message: Optional[str] = Field(default=None, validation_alias=AliasChoices("successMessage", "success_message"))
    purchase_expiration: Optional[int] = Field(default=None, validation_alias="purchaseExpiration")
    referral_fee: Optional[float] = Field(default=None, validation_alias="referralFee")
    referral_account: Optional[str] = Field(default=None, validation_alias="referralAccount")
    accept_payment_delay: bool = Field(default=False, validation_alias="acceptPaymentDelay")
    no_offers: bool = Field(default=False, validation_alias="noOffers")
    pay_by_cc: bool = Field(default=True, validation_alias="payByCC")
    pay_by_bank: bool = Field(default=True, validation_alias="payByBank")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "coerce_numbers_to_str": True,
        "json_schema_extra": {
            "example": {
                "amount": 10,
                "currency": "USD",
                "user_id": "u1",
                "store_id": "s1",
                "service_id": "srv1",
                "emailId": "e@x.com",
                "merchantAccount": "0.0.100",
                "successUrl": "https://shop.example.com/paid",
                "failureUrl": "https://shop.example.com/failed"
            }
        }
    }


class CheckoutResult(BaseModel):
    """Checkout handed back to the storefront."""
    checkout_id: str = Field(min_length=1)
    redirect_url: str = Field(min_length=1)
    qr_code_url: Optional[str] = None
    reference: str
    message: str = "Redirect the user to the redirectUrl to complete the payment"

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "checkoutId": self.checkout_id,
            "redirectUrl": self.redirect_url,
            "qrCodeUrl": self.qr_code_url,
            "reference": self.reference,
            "message": self.message,
        }
