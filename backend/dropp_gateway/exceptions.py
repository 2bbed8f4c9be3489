"""
Gateway Exception Hierarchy

Error taxonomy for the checkout lifecycle:
- ValidationError: bad or missing caller input (4xx, never escalates)
- DependencyError: a required upstream call failed with no fallback (5xx)
- UpstreamRejected: upstream answered but reported a business failure
- BestEffortFailure: a non-critical bookkeeping call failed (logged only)
- ConfigurationError: a required setting is missing for the requested feature
"""
from typing import Optional, Dict, Any


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Every error carries a stable error code, a client-safe message and
    optional structured details.
    """

    status_code = 500

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API error response format."""
        return {
            "success": False,
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class ValidationError(GatewayError):
    """
    Caller input is missing or malformed.

    Examples:
    - Checkout request missing emailId
    - Callback proof without payer or invoiceBytes
    - invoiceBytes that is not base64-encoded JSON
    """

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("gateway:request:invalid", message, details)


class DependencyError(GatewayError):
    """
    A required upstream call failed and no fallback exists.

    Examples:
    - Record store unreachable while creating the transaction
    - Dropp API timed out or answered with non-JSON content
    """

    status_code = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("gateway:dependency:failed", message, details)


class UpstreamRejected(GatewayError):
    """
    Upstream call succeeded transport-wise but reported failure.

    Example:
    - Dropp returned a non-zero responseCode for checkout creation
    """

    status_code = 502

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("gateway:upstream:rejected", message, details)


class BestEffortFailure(GatewayError):
    """
    A non-critical side update failed.

    Never raised to clients: built and logged where a bookkeeping call is
    allowed to fail without changing the primary outcome.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("gateway:bookkeeping:failed", message, details)


class ConfigurationError(GatewayError):
    """
    A feature was called that the deployment is not configured for.

    Example:
    - Sub-merchant callback without DROPP_MERCHANT_ID (no parent merchant)
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("gateway:config:missing", message, details)
