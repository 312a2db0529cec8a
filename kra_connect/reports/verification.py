"""Verification report generators.

Functions:
    pin_report(client, pins)         -> dict
    tcc_report(client, tccs)         -> dict
    eslip_report(client, eslips)     -> dict
    verification_report(kind, results) -> dict   (build from results already fetched)

A single identifier goes through the single-item endpoint (and its cache);
several go through the batch endpoint in one request.
"""

from datetime import datetime, timezone
from typing import Any, Sequence

from kra_connect.client import KraClient
from kra_connect.models import (
    EslipValidationResult,
    PinVerificationResult,
    TccVerificationResult,
)

Result = PinVerificationResult | TccVerificationResult | EslipValidationResult

KINDS = ("pin", "tcc", "eslip")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def pin_report(client: KraClient, pins: Sequence[str]) -> dict:
    if len(pins) == 1:
        results = [client.verify_pin(pins[0])]
    else:
        results = client.verify_pin_batch(list(pins))
    return verification_report("pin", results)


def tcc_report(client: KraClient, tccs: Sequence[str]) -> dict:
    if len(tccs) == 1:
        results = [client.verify_tcc(tccs[0])]
    else:
        results = client.verify_tcc_batch(list(tccs))
    return verification_report("tcc", results)


def eslip_report(client: KraClient, eslips: Sequence[str]) -> dict:
    if len(eslips) == 1:
        results = [client.validate_eslip(eslips[0])]
    else:
        results = client.validate_eslip_batch(list(eslips))
    return verification_report("eslip", results)


def verification_report(kind: str, results: Sequence[Result]) -> dict:
    if kind not in KINDS:
        raise ValueError(f"Unknown verification kind '{kind}'. Expected one of: {', '.join(KINDS)}")
    return {
        "report_type":  f"{kind}_verification",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary":      _build_summary(kind, results),
        "results":      [r.to_dict() for r in results],
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_summary(kind: str, results: Sequence[Result]) -> dict[str, Any]:
    total = len(results)
    valid = sum(1 for r in results if r.is_valid)
    summary: dict[str, Any] = {
        "total":        total,
        "valid":        valid,
        "invalid":      total - valid,
        "success_rate": round(valid / total * 100, 1) if total else 0.0,
    }

    # Kind-specific counters
    if kind == "pin":
        summary["active"] = sum(1 for r in results if r.is_active)
    elif kind == "tcc":
        summary["expired"] = sum(1 for r in results if r.is_expired)
    else:
        summary["paid"] = sum(1 for r in results if r.is_paid)
        summary["pending"] = sum(1 for r in results if r.is_pending)

    return summary
