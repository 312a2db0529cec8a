"""Data models for GavaConnect requests and responses.

Contains dataclasses built from, and serialized back to, the API's JSON:
    - PinVerificationResult
    - TccVerificationResult
    - EslipValidationResult
    - NilReturnRequest / NilReturnResult
    - TaxObligation
    - TaxpayerDetails

``from_dict`` tolerates missing optional fields; ``to_dict`` omits fields
that are None. Timestamps are timezone-aware datetimes, serialized as ISO 8601.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from kra_connect import validators
from kra_connect.exceptions import ValidationError

_CURRENCY_SYMBOLS = {"KES": "KSh ", "USD": "$ ", "EUR": "€ ", "GBP": "£ "}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str | None, default: datetime | None = None) -> datetime | None:
    if not value:
        return default
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _days_until(value: str | None) -> int | None:
    target = _parse_date(value)
    if target is None:
        return None
    return (target - date.today()).days


def _to_float(value: Any) -> float | None:
    return float(value) if value is not None else None


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# PIN verification
# ---------------------------------------------------------------------------

@dataclass
class PinVerificationResult:
    pin_number: str
    is_valid: bool
    taxpayer_name: str | None = None
    status: str | None = None
    taxpayer_type: str | None = None
    registration_date: str | None = None
    additional_data: dict[str, Any] | None = None
    verified_at: datetime = field(default_factory=_now)

    @property
    def is_active(self) -> bool:
        return self.is_valid and self.status == "active"

    @property
    def is_company(self) -> bool:
        return self.taxpayer_type == "company"

    @property
    def is_individual(self) -> bool:
        return self.taxpayer_type == "individual"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PinVerificationResult":
        return cls(
            pin_number=data["pin_number"],
            is_valid=bool(data["is_valid"]),
            taxpayer_name=data.get("taxpayer_name"),
            status=data.get("status"),
            taxpayer_type=data.get("taxpayer_type"),
            registration_date=data.get("registration_date"),
            additional_data=data.get("additional_data"),
            verified_at=_parse_timestamp(data.get("verified_at"), _now()),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "pin_number":        self.pin_number,
            "is_valid":          self.is_valid,
            "taxpayer_name":     self.taxpayer_name,
            "status":            self.status,
            "taxpayer_type":     self.taxpayer_type,
            "registration_date": self.registration_date,
            "additional_data":   self.additional_data,
            "verified_at":       self.verified_at.isoformat(),
        })


# ---------------------------------------------------------------------------
# TCC verification
# ---------------------------------------------------------------------------

@dataclass
class TccVerificationResult:
    tcc_number: str
    is_valid: bool
    taxpayer_name: str | None = None
    pin_number: str | None = None
    issue_date: str | None = None
    expiry_date: str | None = None
    is_expired: bool = False
    status: str | None = None
    certificate_type: str | None = None
    additional_data: dict[str, Any] | None = None
    verified_at: datetime = field(default_factory=_now)

    @property
    def is_currently_valid(self) -> bool:
        return self.is_valid and not self.is_expired and self.status == "active"

    @property
    def days_until_expiry(self) -> int:
        """Days left before expiry; negative once expired, 0 when unknown."""
        days = _days_until(self.expiry_date)
        return 0 if days is None else days

    def is_expiring_soon(self, days: int) -> bool:
        return 0 <= self.days_until_expiry <= days

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TccVerificationResult":
        return cls(
            tcc_number=data["tcc_number"],
            is_valid=bool(data["is_valid"]),
            taxpayer_name=data.get("taxpayer_name"),
            pin_number=data.get("pin_number"),
            issue_date=data.get("issue_date"),
            expiry_date=data.get("expiry_date"),
            is_expired=bool(data.get("is_expired", False)),
            status=data.get("status"),
            certificate_type=data.get("certificate_type"),
            additional_data=data.get("additional_data"),
            verified_at=_parse_timestamp(data.get("verified_at"), _now()),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "tcc_number":       self.tcc_number,
            "is_valid":         self.is_valid,
            "taxpayer_name":    self.taxpayer_name,
            "pin_number":       self.pin_number,
            "issue_date":       self.issue_date,
            "expiry_date":      self.expiry_date,
            "is_expired":       self.is_expired,
            "status":           self.status,
            "certificate_type": self.certificate_type,
            "additional_data":  self.additional_data,
            "verified_at":      self.verified_at.isoformat(),
        })


# ---------------------------------------------------------------------------
# e-slip validation
# ---------------------------------------------------------------------------

@dataclass
class EslipValidationResult:
    eslip_number: str
    is_valid: bool
    taxpayer_pin: str | None = None
    taxpayer_name: str | None = None
    amount: float | None = None
    currency: str | None = None
    payment_date: str | None = None
    payment_reference: str | None = None
    obligation_type: str | None = None
    obligation_period: str | None = None
    status: str | None = None
    additional_data: dict[str, Any] | None = None
    validated_at: datetime = field(default_factory=_now)

    @property
    def is_paid(self) -> bool:
        return self.is_valid and self.status == "paid"

    @property
    def is_pending(self) -> bool:
        return self.is_valid and self.status == "pending"

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EslipValidationResult":
        return cls(
            eslip_number=data["eslip_number"],
            is_valid=bool(data["is_valid"]),
            taxpayer_pin=data.get("taxpayer_pin"),
            taxpayer_name=data.get("taxpayer_name"),
            amount=_to_float(data.get("amount")),
            currency=data.get("currency"),
            payment_date=data.get("payment_date"),
            payment_reference=data.get("payment_reference"),
            obligation_type=data.get("obligation_type"),
            obligation_period=data.get("obligation_period"),
            status=data.get("status"),
            additional_data=data.get("additional_data"),
            validated_at=_parse_timestamp(data.get("validated_at"), _now()),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "eslip_number":      self.eslip_number,
            "is_valid":          self.is_valid,
            "taxpayer_pin":      self.taxpayer_pin,
            "taxpayer_name":     self.taxpayer_name,
            "amount":            self.amount,
            "currency":          self.currency,
            "payment_date":      self.payment_date,
            "payment_reference": self.payment_reference,
            "obligation_type":   self.obligation_type,
            "obligation_period": self.obligation_period,
            "status":            self.status,
            "additional_data":   self.additional_data,
            "validated_at":      self.validated_at.isoformat(),
        })


# ---------------------------------------------------------------------------
# NIL returns
# ---------------------------------------------------------------------------

@dataclass
class NilReturnRequest:
    pin_number: str
    obligation_type: str
    tax_period: str
    declaration: bool = False
    reason: str | None = None
    notes: str | None = None
    documents: list[str] | None = None

    @property
    def has_documents(self) -> bool:
        return bool(self.documents)

    @property
    def document_count(self) -> int:
        return len(self.documents or [])

    @property
    def has_reason(self) -> bool:
        return bool(self.reason)

    def validate(self) -> None:
        """Raise ValidationError naming the first field that is not acceptable."""
        validators.validate_pin(self.pin_number)
        if not self.obligation_type or not self.obligation_type.strip():
            raise ValidationError("Obligation type is required", "obligation_type")
        validators.validate_tax_period(self.tax_period)
        if not self.declaration:
            raise ValidationError(
                "The declaration must be accepted before filing a NIL return",
                "declaration",
            )

    def is_valid(self) -> bool:
        try:
            self.validate()
        except ValidationError:
            return False
        return True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NilReturnRequest":
        documents = data.get("documents")
        return cls(
            pin_number=data["pin_number"],
            obligation_type=data["obligation_type"],
            tax_period=data["tax_period"],
            declaration=bool(data.get("declaration", False)),
            reason=data.get("reason"),
            notes=data.get("notes"),
            documents=list(documents) if documents is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "pin_number":      validators.normalize(self.pin_number),
            "obligation_type": self.obligation_type.strip(),
            "tax_period":      self.tax_period,
            "reason":          self.reason,
            "notes":           self.notes,
            "documents":       self.documents,
            "declaration":     self.declaration,
        })


@dataclass
class NilReturnResult:
    pin_number: str
    obligation_type: str
    tax_period: str
    is_accepted: bool
    status: str
    reference_number: str | None = None
    acknowledgement_number: str | None = None
    filed_at: datetime = field(default_factory=_now)
    processed_at: datetime | None = None
    message: str | None = None
    rejection_reasons: list[str] | None = None
    additional_data: dict[str, Any] | None = None

    @property
    def is_rejected(self) -> bool:
        return not self.is_accepted and self.status == "rejected"

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def is_complete(self) -> bool:
        return self.is_accepted or self.is_rejected

    @property
    def has_rejection_reasons(self) -> bool:
        return bool(self.rejection_reasons)

    @property
    def processing_time_seconds(self) -> int | None:
        if self.processed_at is None:
            return None
        return int((self.processed_at - self.filed_at).total_seconds())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NilReturnResult":
        reasons = data.get("rejection_reasons")
        return cls(
            pin_number=data["pin_number"],
            obligation_type=data["obligation_type"],
            tax_period=data["tax_period"],
            is_accepted=bool(data["is_accepted"]),
            status=data["status"],
            reference_number=data.get("reference_number"),
            acknowledgement_number=data.get("acknowledgement_number"),
            filed_at=_parse_timestamp(data.get("filed_at"), _now()),
            processed_at=_parse_timestamp(data.get("processed_at")),
            message=data.get("message"),
            rejection_reasons=list(reasons) if reasons is not None else None,
            additional_data=data.get("additional_data"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "pin_number":             self.pin_number,
            "obligation_type":        self.obligation_type,
            "tax_period":             self.tax_period,
            "is_accepted":            self.is_accepted,
            "reference_number":       self.reference_number,
            "acknowledgement_number": self.acknowledgement_number,
            "status":                 self.status,
            "filed_at":               self.filed_at.isoformat(),
            "processed_at":           self.processed_at.isoformat() if self.processed_at else None,
            "message":                self.message,
            "rejection_reasons":      self.rejection_reasons,
            "additional_data":        self.additional_data,
        })


# ---------------------------------------------------------------------------
# Taxpayer details
# ---------------------------------------------------------------------------

@dataclass
class TaxObligation:
    obligation_type: str
    tax_period: str
    filing_due_date: str | None = None
    payment_due_date: str | None = None
    filing_status: str | None = None
    payment_status: str | None = None
    amount_due: float | None = None
    amount_paid: float | None = None
    balance: float | None = None
    currency: str | None = None
    last_filing_date: str | None = None
    last_payment_date: str | None = None
    is_overdue: bool = False
    additional_data: dict[str, Any] | None = None

    @property
    def is_filed(self) -> bool:
        return (self.filing_status or "").lower() == "filed"

    @property
    def is_filing_pending(self) -> bool:
        return (self.filing_status or "").lower() == "not_filed"

    @property
    def is_paid(self) -> bool:
        return (self.payment_status or "").lower() == "paid"

    @property
    def is_payment_pending(self) -> bool:
        return (self.payment_status or "").lower() == "unpaid"

    @property
    def is_partially_paid(self) -> bool:
        return (self.payment_status or "").lower() == "partial"

    @property
    def has_balance(self) -> bool:
        return self.balance is not None and self.balance > 0

    @property
    def payment_percentage(self) -> float | None:
        if not self.amount_due or self.amount_paid is None:
            return None
        return self.amount_paid / self.amount_due * 100

    @property
    def days_until_filing_due(self) -> int | None:
        return _days_until(self.filing_due_date)

    @property
    def days_until_payment_due(self) -> int | None:
        return _days_until(self.payment_due_date)

    @property
    def is_filing_overdue(self) -> bool:
        days = self.days_until_filing_due
        return days is not None and days < 0 and not self.is_filed

    @property
    def is_payment_overdue(self) -> bool:
        days = self.days_until_payment_due
        return days is not None and days < 0 and not self.is_paid

    def is_filing_due_soon(self, days: int) -> bool:
        left = self.days_until_filing_due
        return left is not None and 0 <= left <= days

    def is_payment_due_soon(self, days: int) -> bool:
        left = self.days_until_payment_due
        return left is not None and 0 <= left <= days

    def formatted_amount(self) -> str:
        return self._format_money(self.amount_due)

    def formatted_balance(self) -> str:
        return self._format_money(self.balance)

    def _format_money(self, value: float | None) -> str:
        if value is None:
            return "N/A"
        code = (self.currency or "").upper()
        symbol = _CURRENCY_SYMBOLS.get(code, f"{self.currency} " if self.currency else "")
        return f"{symbol}{value:.2f}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaxObligation":
        return cls(
            obligation_type=data["obligation_type"],
            tax_period=data["tax_period"],
            filing_due_date=data.get("filing_due_date"),
            payment_due_date=data.get("payment_due_date"),
            filing_status=data.get("filing_status"),
            payment_status=data.get("payment_status"),
            amount_due=_to_float(data.get("amount_due")),
            amount_paid=_to_float(data.get("amount_paid")),
            balance=_to_float(data.get("balance")),
            currency=data.get("currency"),
            last_filing_date=data.get("last_filing_date"),
            last_payment_date=data.get("last_payment_date"),
            is_overdue=bool(data.get("is_overdue", False)),
            additional_data=data.get("additional_data"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "obligation_type":   self.obligation_type,
            "tax_period":        self.tax_period,
            "filing_due_date":   self.filing_due_date,
            "payment_due_date":  self.payment_due_date,
            "filing_status":     self.filing_status,
            "payment_status":    self.payment_status,
            "amount_due":        self.amount_due,
            "amount_paid":       self.amount_paid,
            "balance":           self.balance,
            "currency":          self.currency,
            "last_filing_date":  self.last_filing_date,
            "last_payment_date": self.last_payment_date,
            "is_overdue":        self.is_overdue,
            "additional_data":   self.additional_data,
        })


@dataclass
class TaxpayerDetails:
    pin_number: str
    taxpayer_name: str
    taxpayer_type: str
    registration_date: str | None = None
    tax_office: str | None = None
    business_activity: str | None = None
    physical_address: str | None = None
    postal_address: str | None = None
    email: str | None = None
    phone_number: str | None = None
    compliance_status: str | None = None
    is_active: bool = True
    obligations: list[TaxObligation] | None = None
    additional_data: dict[str, Any] | None = None
    retrieved_at: datetime = field(default_factory=_now)

    @property
    def is_company(self) -> bool:
        return self.taxpayer_type.lower() == "company"

    @property
    def is_individual(self) -> bool:
        return self.taxpayer_type.lower() == "individual"

    @property
    def is_compliant(self) -> bool:
        return (self.compliance_status or "").lower() == "compliant"

    @property
    def has_obligations(self) -> bool:
        return bool(self.obligations)

    @property
    def obligation_count(self) -> int:
        return len(self.obligations or [])

    @property
    def has_contact_info(self) -> bool:
        return bool(self.email or self.phone_number)

    @property
    def has_address(self) -> bool:
        return bool(self.physical_address or self.postal_address)

    @property
    def display_name(self) -> str:
        return self.taxpayer_name or self.pin_number

    @property
    def years_since_registration(self) -> int | None:
        registered = _parse_date(self.registration_date)
        if registered is None:
            return None
        return (date.today() - registered).days // 365

    def obligations_by_type(self, obligation_type: str) -> list[TaxObligation]:
        wanted = obligation_type.lower()
        return [o for o in self.obligations or [] if o.obligation_type.lower() == wanted]

    def overdue_obligations(self) -> list[TaxObligation]:
        return [o for o in self.obligations or [] if o.is_overdue]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaxpayerDetails":
        obligations = data.get("obligations")
        return cls(
            pin_number=data["pin_number"],
            taxpayer_name=data["taxpayer_name"],
            taxpayer_type=data["taxpayer_type"],
            registration_date=data.get("registration_date"),
            tax_office=data.get("tax_office"),
            business_activity=data.get("business_activity"),
            physical_address=data.get("physical_address"),
            postal_address=data.get("postal_address"),
            email=data.get("email"),
            phone_number=data.get("phone_number"),
            compliance_status=data.get("compliance_status"),
            is_active=bool(data.get("is_active", True)),
            obligations=(
                [TaxObligation.from_dict(o) for o in obligations]
                if obligations is not None else None
            ),
            additional_data=data.get("additional_data"),
            retrieved_at=_parse_timestamp(data.get("retrieved_at"), _now()),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "pin_number":        self.pin_number,
            "taxpayer_name":     self.taxpayer_name,
            "taxpayer_type":     self.taxpayer_type,
            "registration_date": self.registration_date,
            "tax_office":        self.tax_office,
            "business_activity": self.business_activity,
            "physical_address":  self.physical_address,
            "postal_address":    self.postal_address,
            "email":             self.email,
            "phone_number":      self.phone_number,
            "compliance_status": self.compliance_status,
            "is_active":         self.is_active,
            "obligations": (
                [o.to_dict() for o in self.obligations]
                if self.obligations is not None else None
            ),
            "additional_data":   self.additional_data,
            "retrieved_at":      self.retrieved_at.isoformat(),
        })
