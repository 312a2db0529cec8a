"""Input validation for KRA identifiers and request fields.

Usage:
    validate_pin("P051234567A")        # raises ValidationError on bad input
    is_valid_tcc("TCC123456")          # -> True
    normalize("  p051234567a ")        # -> "P051234567A"
"""

import re
from datetime import date

from kra_connect.exceptions import ValidationError

_PIN_RE        = re.compile(r"^P\d{9}[A-Z]$")
_TCC_RE        = re.compile(r"^TCC\d{6,10}$")
_ESLIP_RE      = re.compile(r"^[A-Z0-9]{10,20}$")
_TAX_PERIOD_RE = re.compile(r"^\d{4}-\d{2}$")
_DATE_RE       = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL_RE      = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_PHONE_RE      = re.compile(r"^(\+254|0)[17]\d{8}$")

MIN_API_KEY_LENGTH = 10
MAX_AMOUNT = 999_999_999.99
MIN_YEAR, MAX_YEAR = 2000, 2100


def normalize(value: str) -> str:
    """Return the canonical form of an identifier: stripped and upper-cased."""
    return value.strip().upper()


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

def validate_pin(pin: str) -> None:
    """Validate a KRA PIN: ``P`` + 9 digits + a letter (e.g. P051234567A)."""
    if not pin:
        raise ValidationError("PIN number is required", "pin")
    if not _PIN_RE.match(normalize(pin)):
        raise ValidationError(
            "Invalid PIN format. Expected P followed by 9 digits and a letter "
            "(e.g. P051234567A)",
            "pin",
            details={"provided": pin},
        )


def validate_tcc(tcc: str) -> None:
    """Validate a Tax Compliance Certificate number: ``TCC`` + 6-10 digits."""
    if not tcc:
        raise ValidationError("TCC number is required", "tcc")
    if not _TCC_RE.match(normalize(tcc)):
        raise ValidationError(
            "Invalid TCC format. Expected TCC followed by 6-10 digits (e.g. TCC123456)",
            "tcc",
            details={"provided": tcc},
        )


def validate_eslip(eslip: str) -> None:
    """Validate an e-slip number: 10-20 alphanumeric characters."""
    if not eslip:
        raise ValidationError("E-slip number is required", "eslip")
    if not _ESLIP_RE.match(normalize(eslip)):
        raise ValidationError(
            "Invalid e-slip format. Expected 10-20 alphanumeric characters",
            "eslip",
            details={"provided": eslip},
        )


# ---------------------------------------------------------------------------
# Periods and dates
# ---------------------------------------------------------------------------

def validate_tax_period(tax_period: str) -> None:
    """Validate a ``YYYY-MM`` tax period with a real month and a sane year."""
    if not tax_period:
        raise ValidationError("Tax period is required", "tax_period")
    if not _TAX_PERIOD_RE.match(tax_period):
        raise ValidationError(
            "Invalid tax period format. Expected YYYY-MM (e.g. 2024-01)",
            "tax_period",
            details={"provided": tax_period},
        )

    year, month = (int(part) for part in tax_period.split("-"))
    if not 1 <= month <= 12:
        raise ValidationError(
            "Invalid month in tax period. Month must be between 01 and 12",
            "tax_period",
            details={"provided": tax_period},
        )
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(
            f"Invalid year in tax period. Year must be between {MIN_YEAR} and {MAX_YEAR}",
            "tax_period",
            details={"provided": tax_period},
        )


def validate_date(value: str) -> None:
    """Validate a ``YYYY-MM-DD`` string that names an existing calendar day."""
    if not value:
        raise ValidationError("Date is required", "date")
    if not _DATE_RE.match(value):
        raise ValidationError(
            "Invalid date format. Expected YYYY-MM-DD (e.g. 2024-01-15)",
            "date",
            details={"provided": value},
        )
    try:
        date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(
            "Invalid date value",
            "date",
            details={"provided": value, "error": str(exc)},
        ) from exc


# ---------------------------------------------------------------------------
# Contact details, credentials, money
# ---------------------------------------------------------------------------

def validate_email(email: str) -> None:
    if not email:
        raise ValidationError("Email is required", "email")
    if not _EMAIL_RE.match(email.strip()):
        raise ValidationError("Invalid email format", "email", details={"provided": email})


def validate_phone(phone: str) -> None:
    """Validate a Kenyan mobile number (+2547XXXXXXXX, 07XXXXXXXX, 01XXXXXXXX…)."""
    if not phone:
        raise ValidationError("Phone number is required", "phone")
    if not _PHONE_RE.match(phone.strip()):
        raise ValidationError(
            "Invalid Kenyan phone number format. Expected +254712345678 or 0712345678",
            "phone",
            details={"provided": phone},
        )


def validate_api_key(api_key: str) -> None:
    if not api_key:
        raise ValidationError("API key is required", "api_key")
    if len(api_key.strip()) < MIN_API_KEY_LENGTH:
        raise ValidationError(
            f"API key is too short. Minimum length is {MIN_API_KEY_LENGTH} characters",
            "api_key",
        )


def validate_amount(amount: float) -> None:
    if amount < 0:
        raise ValidationError(
            "Amount cannot be negative", "amount", details={"provided": amount}
        )
    if amount > MAX_AMOUNT:
        raise ValidationError(
            "Amount exceeds maximum allowed value",
            "amount",
            details={"provided": amount, "max": MAX_AMOUNT},
        )


# ---------------------------------------------------------------------------
# Boolean twins
# ---------------------------------------------------------------------------

def _passes(validator, value) -> bool:
    try:
        validator(value)
    except ValidationError:
        return False
    return True


def is_valid_pin(pin: str) -> bool:
    return _passes(validate_pin, pin)


def is_valid_tcc(tcc: str) -> bool:
    return _passes(validate_tcc, tcc)


def is_valid_eslip(eslip: str) -> bool:
    return _passes(validate_eslip, eslip)


def is_valid_tax_period(tax_period: str) -> bool:
    return _passes(validate_tax_period, tax_period)


def is_valid_email(email: str) -> bool:
    return _passes(validate_email, email)


def is_valid_phone(phone: str) -> bool:
    return _passes(validate_phone, phone)
