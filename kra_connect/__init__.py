"""Python SDK for the Kenya Revenue Authority GavaConnect API.

    from kra_connect import KraClient, KraConfig

    with KraClient(KraConfig(api_key="kra_xxx")) as client:
        result = client.verify_pin("P051234567A")
"""

__version__ = "0.1.0"

from kra_connect.client import KraClient  # noqa: E402
from kra_connect.config import ConfigError, KraConfig  # noqa: E402
from kra_connect.exceptions import (  # noqa: E402
    ApiError,
    AuthenticationError,
    CacheError,
    KraError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ValidationError,
)
from kra_connect.models import (  # noqa: E402
    EslipValidationResult,
    NilReturnRequest,
    NilReturnResult,
    PinVerificationResult,
    TaxObligation,
    TaxpayerDetails,
    TccVerificationResult,
)

__all__ = [
    "__version__",
    "KraClient",
    "KraConfig",
    "ConfigError",
    "KraError",
    "ValidationError",
    "AuthenticationError",
    "RateLimitError",
    "RequestTimeoutError",
    "ApiError",
    "NetworkError",
    "CacheError",
    "PinVerificationResult",
    "TccVerificationResult",
    "EslipValidationResult",
    "NilReturnRequest",
    "NilReturnResult",
    "TaxObligation",
    "TaxpayerDetails",
]
