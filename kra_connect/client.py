"""KRA GavaConnect API client.

Usage:
    client = KraClient(KraConfig(api_key="kra_xxx"))
    result = client.verify_pin("P051234567A")
    if result.is_valid:
        print(result.taxpayer_name)

    with KraClient(config) as client:                   # closes the session on exit
        results = client.verify_tcc_batch(["TCC123456", "TCC789012"])
"""

import json
import logging
import warnings
from typing import Any, Callable, TypeVar

import requests

from kra_connect import validators
from kra_connect.cache import CacheManager
from kra_connect.config import KraConfig
from kra_connect.exceptions import ApiError
from kra_connect.http_client import HttpClient
from kra_connect.models import (
    EslipValidationResult,
    NilReturnRequest,
    NilReturnResult,
    PinVerificationResult,
    TaxpayerDetails,
    TccVerificationResult,
)
from kra_connect.rate_limiter import RateLimiter
from kra_connect.retry import RetryHandler

logger = logging.getLogger(__name__)

R = TypeVar("R")


class KraClient:
    """High-level client: validates input, calls the API and returns typed results."""

    def __init__(
        self,
        config: KraConfig,
        cache: CacheManager | None = None,
        rate_limiter: RateLimiter | None = None,
        retry_handler: RetryHandler | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        if config.enable_debug_logging:
            logging.getLogger("kra_connect").setLevel(logging.DEBUG)

        self._cache = cache or CacheManager(
            max_size=config.max_cache_size,
            default_ttl=config.cache_ttl,
        )
        self._rate_limiter = rate_limiter or RateLimiter(
            max_requests_per_second=config.max_requests_per_second,
            enabled=config.enable_rate_limit,
        )
        self._retry_handler = retry_handler or RetryHandler(
            max_retries=config.max_retries,
            initial_delay=config.retry_delay,
            max_delay=config.max_retry_delay,
            retry_status_codes=config.retry_status_codes,
        )
        # One cache / limiter / retry handler shared with the transport
        self._http = HttpClient(
            config,
            cache=self._cache,
            rate_limiter=self._rate_limiter,
            retry_handler=self._retry_handler,
            session=session,
        )

    def __enter__(self) -> "KraClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # PIN
    # ------------------------------------------------------------------

    def verify_pin(self, pin: str) -> PinVerificationResult:
        """Check that a KRA PIN exists and return the registered taxpayer.

        Raises:
            ValidationError:     malformed PIN (no request is sent)
            AuthenticationError: HTTP 401/403
            KraError:            any other API, network or timeout failure
        """
        validators.validate_pin(pin)
        data = self._http.get("/verify-pin", {"pin": validators.normalize(pin)})
        return _parse("/verify-pin", data, PinVerificationResult.from_dict)

    def verify_pin_batch(self, pins: list[str]) -> list[PinVerificationResult]:
        """Verify several PINs in one request. Every PIN is validated first."""
        return self._batch(
            "/verify-pin-batch", "pins", pins,
            validators.validate_pin, PinVerificationResult.from_dict,
        )

    # ------------------------------------------------------------------
    # TCC
    # ------------------------------------------------------------------

    def verify_tcc(self, tcc: str) -> TccVerificationResult:
        """Check a Tax Compliance Certificate number."""
        validators.validate_tcc(tcc)
        data = self._http.get("/verify-tcc", {"tcc": validators.normalize(tcc)})
        return _parse("/verify-tcc", data, TccVerificationResult.from_dict)

    def verify_tcc_batch(self, tccs: list[str]) -> list[TccVerificationResult]:
        return self._batch(
            "/verify-tcc-batch", "tccs", tccs,
            validators.validate_tcc, TccVerificationResult.from_dict,
        )

    # ------------------------------------------------------------------
    # e-slip
    # ------------------------------------------------------------------

    def validate_eslip(self, eslip: str) -> EslipValidationResult:
        """Look up an electronic payment slip and its payment status."""
        validators.validate_eslip(eslip)
        data = self._http.get("/validate-eslip", {"eslip": validators.normalize(eslip)})
        return _parse("/validate-eslip", data, EslipValidationResult.from_dict)

    def validate_eslip_batch(self, eslips: list[str]) -> list[EslipValidationResult]:
        return self._batch(
            "/validate-eslip-batch", "eslips", eslips,
            validators.validate_eslip, EslipValidationResult.from_dict,
        )

    # ------------------------------------------------------------------
    # NIL returns and taxpayer details
    # ------------------------------------------------------------------

    def file_nil_return(self, request: NilReturnRequest) -> NilReturnResult:
        """File a NIL return. Never cached, and validated before sending.

        Raises:
            ValidationError: bad PIN, missing obligation type, bad tax period,
                             or the declaration was not accepted
        """
        request.validate()
        logger.info(
            "Filing NIL return for %s (%s, %s)",
            validators.normalize(request.pin_number), request.obligation_type, request.tax_period,
        )
        data = self._http.post("/file-nil-return", body=request.to_dict())
        return _parse("/file-nil-return", data, NilReturnResult.from_dict)

    def get_taxpayer_details(self, pin: str) -> TaxpayerDetails:
        validators.validate_pin(pin)
        data = self._http.get("/taxpayer-details", {"pin": validators.normalize(pin)})
        return _parse("/taxpayer-details", data, TaxpayerDetails.from_dict)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def remove_cache_entry(self, key: str) -> None:
        """Drop one cached response, e.g. ``GET:<base_url>/verify-pin?pin=P051234567A``."""
        self._cache.remove(key)

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()

    def rate_limiter_stats(self) -> dict[str, Any]:
        return self._rate_limiter.stats()

    def reset_rate_limiter(self) -> None:
        self._rate_limiter.reset()

    def stats(self) -> dict[str, Any]:
        return {
            "cache":        self._cache.stats(),
            "rate_limiter": self._rate_limiter.stats(),
            "config":       self.config.summary(),
        }

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._http.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _batch(
        self,
        endpoint: str,
        body_key: str,
        values: list[str],
        validate: Callable[[str], None],
        parse: Callable[[dict[str, Any]], R],
    ) -> list[R]:
        for value in values:
            validate(value)
        if not values:
            return []

        normalized = [validators.normalize(v) for v in values]
        if len(set(normalized)) != len(normalized):
            warnings.warn(
                f"Batch for {endpoint} contains duplicate identifiers; "
                "each one is sent and returned as many times as it appears.",
                UserWarning,
                stacklevel=3,
            )

        data = self._http.post(endpoint, body={body_key: normalized})
        results = data.get("results")
        if not isinstance(results, list):
            raise ApiError(
                "Batch response has no 'results' list",
                200,
                endpoint,
                response_body=json.dumps(data, default=str),
            )
        return [_parse(endpoint, item, parse) for item in results]


def _parse(endpoint: str, data: Any, parse: Callable[[Any], R]) -> R:
    """Build a model from a 2xx body, raising ApiError when the body has the wrong shape."""
    try:
        return parse(data)
    except (KeyError, ValueError, TypeError, AttributeError) as exc:
        raise ApiError(
            "Unexpected response shape",
            200,
            endpoint,
            response_body=json.dumps(data, default=str),
            details={"error": f"{type(exc).__name__}: {exc}"},
        ) from exc
