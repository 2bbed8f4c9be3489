"""
Pydantic Refund Models

Refund request from the merchant back office or the refund callback.
"""
from typing import Optional, Union
from pydantic import AliasChoices, BaseModel, Field


class RefundRequest(BaseModel):
    """
    Refund of a settled Dropp payment.

    The payment is identified by the paymentRef / transactionReference pair
    Dropp returned when it accepted the proof. reference, when given, is the
    merchant transaction record annotated with the refund.
    """
    amount: Optional[Union[int, float]] = None
    payment_reference: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("paymentReference", "paymentRef")
    )
    transaction_reference: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("transactionReference", "transaction_reference")
    )
    merchant_account: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("merchantAccount", "merchantId")
    )
    refund_ref: Optional[str] = Field(default=None, validation_alias=AliasChoices("refundRef", "refund_ref"))
    refund_reason: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refundReason", "refund_reason")
    )
    reference: Optional[str] = None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
        "coerce_numbers_to_str": True,
        "json_schema_extra": {
            "example": {
                "amount": 5,
                "paymentReference": "pref-1",
                "transactionReference": "tref-1",
                "refundReason": "Item returned",
                "reference": "txn-001"
            }
        }
    }
