"""Taxpayer compliance report.

Functions:
    get_compliance(client, pin)  -> dict
    compliance_report(details)   -> dict

Counts a taxpayer's obligations by filing and payment status and totals the
outstanding balance per currency.
"""

from datetime import datetime, timezone
from typing import Any

from kra_connect.client import KraClient
from kra_connect.models import TaxObligation, TaxpayerDetails

_FILING_STATUSES  = ("filed", "not_filed")
_PAYMENT_STATUSES = ("paid", "partial", "unpaid")


def get_compliance(client: KraClient, pin: str) -> dict:
    return compliance_report(client.get_taxpayer_details(pin))


def compliance_report(details: TaxpayerDetails) -> dict:
    obligations = details.obligations or []
    return {
        "report_type":  "compliance",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "taxpayer": {
            "pin_number":        details.pin_number,
            "name":              details.display_name,
            "type":              details.taxpayer_type,
            "is_active":         details.is_active,
            "compliance_status": details.compliance_status,
            "is_compliant":      details.is_compliant,
        },
        "summary":     _build_summary(obligations),
        "obligations": [o.to_dict() for o in obligations],
    }


def _build_summary(obligations: list[TaxObligation]) -> dict[str, Any]:
    by_filing  = {s: 0 for s in _FILING_STATUSES}
    by_payment = {s: 0 for s in _PAYMENT_STATUSES}
    balance: dict[str, float] = {}

    for obligation in obligations:
        filing  = (obligation.filing_status or "").lower()
        payment = (obligation.payment_status or "").lower()
        if filing in by_filing:
            by_filing[filing] += 1
        if payment in by_payment:
            by_payment[payment] += 1
        if obligation.has_balance:
            currency = (obligation.currency or "KES").upper()
            balance[currency] = round(balance.get(currency, 0.0) + obligation.balance, 2)

    return {
        "total":             len(obligations),
        "by_filing_status":  by_filing,
        "by_payment_status": by_payment,
        "overdue":           sum(1 for o in obligations if o.is_overdue),
        "balance":           balance,
    }
