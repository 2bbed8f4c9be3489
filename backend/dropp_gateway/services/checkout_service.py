"""
Checkout Service

Creates a Dropp checkout for a storefront order.

Flow:
1. Validate mandatory correlation fields (no external call on failure)
2. Create the transaction record; its transaction_id becomes the invoice reference
3. Ask Dropp for a checkout UUID and payment link
4. Record the UUID and link (best-effort)
5. Return checkout id, redirect URL and reference
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..clients.dropp_client import DroppClient
from ..clients.record_store import TransactionRecordClient
from ..config import settings
from ..exceptions import DependencyError, UpstreamRejected, ValidationError
from ..models.checkout import CheckoutRequest, CheckoutResult
from ..models.payloads import PaymentRequest
from ..models.transactions import PaymentStatus
from .transaction_service import sync_transaction, utc_now_iso

logger = logging.getLogger(__name__)

# (wire name, attribute) in the order they are checked
MANDATORY_FIELDS: List[Tuple[str, str]] = [
    ("amount", "amount"),
    ("currency", "currency"),
    ("user_id", "user_id"),
    ("store_id", "store_id"),
    ("emailId", "email_id"),
    ("service_id", "service_id"),
    ("merchantAccount", "merchant_account"),
]

DEFAULT_REDIRECT_TEMPLATE = "https://dropp.app.link/checkouts/{checkout_id}?uuid={checkout_id}"


def parse_checkout_request(payload: Any) -> CheckoutRequest:
    """
    Parse a raw checkout body.

    Raises:
        ValidationError: body is not an object or has ill-typed fields
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return CheckoutRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid checkout request",
            details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def validate_checkout_request(request: CheckoutRequest, merchant_account: Optional[str]) -> None:
    """
    Ensure all mandatory fields are present.

    Raises:
        ValidationError: naming the first missing field
    """
    for wire_name, attribute in MANDATORY_FIELDS:
        value = merchant_account if attribute == "merchant_account" else getattr(request, attribute)
        if _is_missing(value):
            logger.info(f"Missing mandatory field in checkout request: {wire_name}")
            raise ValidationError(
                f"Missing required field: {wire_name}",
                details={"field": wire_name}
            )


def build_description(request: CheckoutRequest) -> str:
    """
    Flatten additional details plus the correlation fields into "k=v; k=v".

    The user/store/email/service correlation fields are always included and
    win over same-named keys in additional_details.
    """
    details: Dict[str, Any] = dict(request.additional_details or {})
    details.update({
        "user_id": request.user_id,
        "store_id": request.store_id,
        "emailId": request.email_id,
        "service_id": request.service_id,
    })
    return "; ".join(f"{key}={value}" for key, value in details.items())


def _record_payload(request: CheckoutRequest, merchant_account: str, signing_key: str) -> Dict[str, Any]:
    return {
        "merchantAccount": merchant_account,
        "signingKey": signing_key,
        "payment_status": PaymentStatus.INITIATED.value,
        "createdAt": utc_now_iso(),
        "successUrl": request.success_url,
        "failureUrl": request.failure_url,
        "user_id": request.user_id,
        "amount": request.amount,
        "currency": request.currency,
        "service_id": request.service_id,
        "store_id": request.store_id,
        "emailId": request.email_id,
        "payment_method": "dropp",
        "title": request.title,
        "type": request.type,
        "additional_details": request.additional_details,
        "successMessage": request.success_message,
    }


def build_payment_request(
    request: CheckoutRequest,
    merchant_account: str,
    reference: str,
    callback_url: str
) -> PaymentRequest:
    """Assemble the Dropp payment request for a validated checkout."""
    return PaymentRequest(
        merchant_account=merchant_account,
        amount=request.amount,
        currency=request.currency,
        reference=reference,
        description=build_description(request),
        thumbnail=request.thumbnail or "",
        url=callback_url,
        title=request.title or "",
        type=request.type or "",
        purchase_expiration=request.purchase_expiration or None,
        referral_fee=request.referral_fee or None,
        referral_account=request.referral_account or None,
        distribution=request.distribution or None,
        accept_payment_delay=request.accept_payment_delay,
        no_offers=request.no_offers,
        pay_by_cc=request.pay_by_cc,
        pay_by_bank=request.pay_by_bank,
        success_url=request.success_url or "",
        failure_url=request.failure_url or "",
        success_message=request.success_message,
    )


async def create_checkout(
    request: CheckoutRequest,
    record_client: TransactionRecordClient,
    dropp_client: DroppClient,
    default_callback_url: str
) -> CheckoutResult:
    """
    Create a Dropp checkout for a storefront order.

    Args:
        request: Parsed checkout request
        record_client: Transaction record store client
        dropp_client: Dropp adapter
        default_callback_url: Wallet callback URL used when the request has none

    Returns:
        CheckoutResult with non-empty checkout id and redirect URL

    Raises:
        ValidationError: a mandatory field is missing
        DependencyError: record creation failed (no reference for the invoice)
            or Dropp was unreachable
        UpstreamRejected: Dropp refused to create the checkout
    """
    merchant_account = request.merchant_account or settings.dropp_merchant_id
    signing_key = request.signing_key or settings.dropp_merchant_signing_key

    validate_checkout_request(request, merchant_account)

    logger.info(f"Checkout requested for merchant {merchant_account}: {request.amount} {request.currency}")

    # The created record's transaction_id is the invoice reference
    try:
        created = await record_client.create_transaction(
            _record_payload(request, merchant_account, signing_key)
        )
    except DependencyError:
        logger.error("Failed to create transaction record")
        raise

    if not created.ok or not created.transaction_id:
        logger.error(f"Record store did not create the transaction: {created.raw}")
        raise DependencyError(
            "Failed to create transaction record",
            details={"raw": created.raw}
        )
    reference = created.transaction_id

    payment_request = build_payment_request(
        request,
        merchant_account,
        reference,
        request.callback_url or default_callback_url
    )
    logger.info(f"Requesting Dropp checkout for reference {reference}, description: {payment_request.description}")

    response = await dropp_client.generate_checkout(payment_request)
    checkout_id = response.data_field("uuid")

    if not response.ok or not checkout_id:
        logger.warning(f"Failed to generate checkout UUID: {response.to_wire()}")
        raise UpstreamRejected(
            "Failed to generate checkout UUID",
            details={"responseCode": response.response_code, "errors": response.errors, "reference": reference}
        )

    qr_code_url = response.data_field("link") or None

    await sync_transaction(
        record_client,
        reference,
        PaymentStatus.CHECKOUT_CREATED,
        {
            "createdAt": utc_now_iso(),
            "payment_link": qr_code_url,
            "payment_id": checkout_id,
        }
    )

    redirect_url = qr_code_url or DEFAULT_REDIRECT_TEMPLATE.format(checkout_id=checkout_id)
    logger.info(f"Checkout created. CheckoutId: {checkout_id}, reference: {reference}")

    return CheckoutResult(
        checkout_id=str(checkout_id),
        redirect_url=redirect_url,
        qr_code_url=qr_code_url,
        reference=reference,
    )
