"""Client configuration: defaults, validation and YAML loading.

Usage:
    config = KraConfig(api_key="kra_xxx")               # programmatic
    config = load("kra-config.yaml")                    # raises ConfigError on bad config
    faster = config.replace(timeout=10, max_retries=1)  # copy with overrides
    generate_template("kra-config.yaml")                # writes example file to disk
"""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from kra_connect import __version__

DEFAULT_BASE_URL = "https://api.kra.go.ke/gavaconnect"
DEFAULT_RETRY_STATUS_CODES = (408, 429, 500, 502, 503, 504)
DEFAULT_CONFIG_PATH = "kra-config.yaml"
MAX_RETRIES_LIMIT = 10

_FLOAT_FIELDS = ("timeout", "cache_ttl", "retry_delay", "max_retry_delay")
_INT_FIELDS   = ("max_cache_size", "max_requests_per_second", "max_retries")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KraConfig:
    """Settings shared by the HTTP layer, the cache, the limiter and the retry handler.

    Durations are expressed in seconds.
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    enable_cache: bool = True
    cache_ttl: float = 3600.0
    max_cache_size: int = 100
    enable_rate_limit: bool = True
    max_requests_per_second: int = 10
    max_retries: int = 3
    retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    retry_status_codes: tuple[int, ...] = DEFAULT_RETRY_STATUS_CODES
    enable_debug_logging: bool = False
    custom_headers: dict[str, str] | None = field(default=None, compare=False)
    user_agent: str = f"kra-connect-python/{__version__}"

    def validate(self) -> None:
        """Raise ConfigError listing every invalid setting."""
        type_errors = _type_errors(self)
        if type_errors:
            # Range checks below assume numbers
            raise ConfigError("Invalid configuration:\n" + "\n".join(type_errors))

        errors: list[str] = []

        if not self.api_key:
            errors.append("  - API key cannot be empty (or set the KRA_API_KEY environment variable)")
        if not self.base_url:
            errors.append("  - base URL cannot be empty")
        elif not self.base_url.startswith(("http://", "https://")):
            errors.append("  - base URL must start with http:// or https://")
        if self.timeout <= 0:
            errors.append("  - timeout must be greater than 0")
        if self.max_retries < 0:
            errors.append("  - max_retries cannot be negative")
        if self.max_retries > MAX_RETRIES_LIMIT:
            errors.append(f"  - max_retries cannot exceed {MAX_RETRIES_LIMIT}")
        if self.max_requests_per_second <= 0:
            errors.append("  - max_requests_per_second must be greater than 0")
        if self.max_cache_size < 0:
            errors.append("  - max_cache_size cannot be negative")
        if self.cache_ttl <= 0:
            errors.append("  - cache_ttl must be greater than 0")

        if errors:
            raise ConfigError("Invalid configuration:\n" + "\n".join(errors))

    def replace(self, **overrides: Any) -> "KraConfig":
        """Return a copy of this config with *overrides* applied."""
        return dataclasses.replace(self, **overrides)

    # ------------------------------------------------------------------
    # Serialization (wire format uses millisecond / second suffixed keys)
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KraConfig":
        defaults = cls(api_key="")
        codes = data.get("retry_status_codes")
        return cls(
            api_key=data["api_key"],
            base_url=data.get("base_url", defaults.base_url),
            timeout=data.get("timeout_ms", defaults.timeout * 1000) / 1000,
            enable_cache=data.get("enable_cache", defaults.enable_cache),
            cache_ttl=data.get("cache_ttl_seconds", defaults.cache_ttl),
            max_cache_size=data.get("max_cache_size", defaults.max_cache_size),
            enable_rate_limit=data.get("enable_rate_limit", defaults.enable_rate_limit),
            max_requests_per_second=data.get(
                "max_requests_per_second", defaults.max_requests_per_second
            ),
            max_retries=data.get("max_retries", defaults.max_retries),
            retry_delay=data.get("retry_delay_ms", defaults.retry_delay * 1000) / 1000,
            max_retry_delay=data.get("max_retry_delay_ms", defaults.max_retry_delay * 1000) / 1000,
            retry_status_codes=tuple(codes) if codes is not None else defaults.retry_status_codes,
            enable_debug_logging=data.get("enable_debug_logging", defaults.enable_debug_logging),
            custom_headers=dict(data["custom_headers"]) if data.get("custom_headers") else None,
            user_agent=data.get("user_agent", defaults.user_agent),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "api_key": self.api_key,
            "base_url": self.base_url,
            "timeout_ms": int(self.timeout * 1000),
            "enable_cache": self.enable_cache,
            "cache_ttl_seconds": int(self.cache_ttl),
            "max_cache_size": self.max_cache_size,
            "enable_rate_limit": self.enable_rate_limit,
            "max_requests_per_second": self.max_requests_per_second,
            "max_retries": self.max_retries,
            "retry_delay_ms": int(self.retry_delay * 1000),
            "max_retry_delay_ms": int(self.max_retry_delay * 1000),
            "retry_status_codes": list(self.retry_status_codes),
            "enable_debug_logging": self.enable_debug_logging,
            "user_agent": self.user_agent,
        }
        if self.custom_headers is not None:
            data["custom_headers"] = dict(self.custom_headers)
        return data

    def summary(self) -> dict[str, Any]:
        """Non-secret subset of the settings, safe to print or log."""
        return {
            "base_url": self.base_url,
            "timeout_seconds": self.timeout,
            "enable_cache": self.enable_cache,
            "enable_rate_limit": self.enable_rate_limit,
            "max_retries": self.max_retries,
        }

    def __repr__(self) -> str:
        return (
            f"KraConfig(base_url={self.base_url!r}, timeout={self.timeout}s, "
            f"enable_cache={self.enable_cache}, enable_rate_limit={self.enable_rate_limit}, "
            f"max_retries={self.max_retries})"
        )


def _type_errors(config: KraConfig) -> list[str]:
    errors = []
    for name in _FLOAT_FIELDS + _INT_FIELDS:
        value = getattr(config, name)
        allowed = (int, float) if name in _FLOAT_FIELDS else (int,)
        if isinstance(value, bool) or not isinstance(value, allowed):
            kind = "a number" if name in _FLOAT_FIELDS else "an integer"
            errors.append(f"  - {name} must be {kind}, got {value!r}")
    return errors


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

# Keys accepted under the ``client:`` section of the YAML file
_CLIENT_OPTIONS = {
    f.name for f in dataclasses.fields(KraConfig)
    if f.name not in ("api_key", "base_url", "custom_headers")
}


def load(config_path: str = DEFAULT_CONFIG_PATH) -> KraConfig:
    """Load and validate configuration from a YAML file.

    Environment variables KRA_API_KEY and KRA_BASE_URL override file values.

    Raises:
        ConfigError: if the file is missing, malformed, holds unknown options
                     or required fields are absent.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `kra-connect init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    api = raw.get("api") or {}
    client: dict[str, Any] = dict(raw.get("client") or {})

    unknown = sorted(set(client) - _CLIENT_OPTIONS - {"headers"})
    if unknown:
        raise ConfigError(
            f"Unknown option(s) in 'client' section of '{config_path}': {', '.join(unknown)}"
        )

    api_key  = os.environ.get("KRA_API_KEY")  or api.get("key", "")
    base_url = os.environ.get("KRA_BASE_URL") or api.get("base_url", DEFAULT_BASE_URL)

    headers = client.pop("headers", None)
    if "retry_status_codes" in client:
        client["retry_status_codes"] = tuple(client["retry_status_codes"])

    try:
        config = KraConfig(
            api_key=str(api_key).strip(),
            base_url=str(base_url).strip(),
            custom_headers={str(k): str(v) for k, v in headers.items()} if headers else None,
            **client,
        )
    except TypeError as exc:
        raise ConfigError(f"Invalid value in '{config_path}': {exc}") from exc

    config.validate()
    return config


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = f"""\
api:
  key: "your-gavaconnect-api-key"    # Or set KRA_API_KEY
  base_url: "{DEFAULT_BASE_URL}"

client:
  timeout: 30                    # seconds
  max_retries: 3
  retry_delay: 1                 # seconds, doubled on each retry
  max_retry_delay: 30
  enable_cache: true
  cache_ttl: 3600                # seconds
  max_cache_size: 100
  enable_rate_limit: true
  max_requests_per_second: 10
  # headers:
  #   X-Request-Source: "my-app"
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template kra-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
