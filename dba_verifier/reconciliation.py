"""
Data reconciliation — claimed data versus what the registry says today.

OldData is the genesis revision's "forms_" fields (prefix stripped),
NewData is a fresh extraction of the same URL plus that URL.

Comparison rules:
  1. Key-set cardinality first. A different number of keys means the
     registry's schema drifted (or the table vanished); that is reported
     as a structural mismatch and no field is compared.
  2. Otherwise every key, in sorted order, is compared with strict string
     equality. No trimming, no case folding: a cosmetic edit on the
     registry is still an edit and must surface.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Optional

import httpx

from .config import DEFAULT_USER_AGENT
from .exceptions import ExtractionError, NetworkError, SchemaDriftError, VerificationCancelled
from .extractor import scrape_trade_name_details
from .models import (
    FieldDiff,
    LogEntry,
    LogType,
    ReconciliationResult,
    StageError,
    StageStatus,
    TradeNameDetails,
)
from .provenance import FORMS_PREFIX

logger = logging.getLogger(__name__)

# Claim metadata written by the claimant, not scraped from the registry
CLAIM_METADATA_KEYS: frozenset[str] = frozenset({"delegated_addresses", "type"})

URL_KEY = "url"


# ─── Data Preparation ───────────────────────────────────────────────


def old_data_from_genesis(genesis: dict[str, Any]) -> dict[str, Any]:
    """Claimed fields from the genesis revision, "forms_" prefix stripped."""
    old: dict[str, Any] = {}
    for key, value in genesis.items():
        if not key.startswith(FORMS_PREFIX):
            continue
        name = key[len(FORMS_PREFIX):]
        if name in CLAIM_METADATA_KEYS:
            continue
        old[name] = value
    return old


def live_data(details: Optional[TradeNameDetails], url: str) -> dict[str, Any]:
    """NewData: freshly extracted fields (if any) plus the source URL."""
    new: dict[str, Any] = details.model_dump() if details is not None else {}
    new[URL_KEY] = url
    return new


# ─── Comparison ─────────────────────────────────────────────────────


def reconcile(old: dict[str, Any], new: dict[str, Any]) -> ReconciliationResult:
    """Compare claimed data to live data. Pure; no I/O."""
    old_keys = sorted(old)
    new_keys = sorted(new)

    if len(old_keys) != len(new_keys):
        drift = SchemaDriftError(
            f"Keys do not match: claim has {len(old_keys)}, source has {len(new_keys)}",
            details={"old_keys": old_keys, "new_keys": new_keys},
        )
        return ReconciliationResult(
            status=StageStatus.FAILED,
            structural_mismatch=True,
            old_keys=old_keys,
            new_keys=new_keys,
            log=[
                LogEntry(log_type=LogType.ERROR, message="Data verification failed."),
                LogEntry(log_type=LogType.ERROR, message="Keys do not match"),
            ],
            errors=[StageError(code=drift.code, message=str(drift), details=drift.details)],
        )

    diffs: list[FieldDiff] = []
    log: list[LogEntry] = []
    for key in old_keys:
        old_value = old[key]
        new_value = new.get(key)
        match = old_value == new_value
        diffs.append(
            FieldDiff(
                field=key,
                old_value=_as_text(old_value),
                new_value=_as_text(new_value),
                match=match,
            )
        )
        log.append(
            LogEntry(
                log_type=LogType.SUCCESS if match else LogType.ERROR,
                message=f"Key: {key}",
            )
        )

    mismatched = [d.field for d in diffs if not d.match]
    if mismatched:
        log.append(LogEntry(log_type=LogType.ERROR, message="Data verification failed."))
        errors = [
            StageError(
                code="FIELD_MISMATCH",
                message=f"{len(mismatched)} field(s) differ from the live registry",
                details={"fields": mismatched},
            )
        ]
    else:
        log.append(LogEntry(log_type=LogType.SUCCESS, message="Data verification passed."))
        errors = []

    return ReconciliationResult(
        status=StageStatus.FAILED if mismatched else StageStatus.PASSED,
        field_diffs=diffs,
        mismatch_count=len(mismatched),
        old_keys=old_keys,
        new_keys=new_keys,
        log=log,
        errors=errors,
    )


def reconcile_with_source(
    old: dict[str, Any],
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
    user_agent: str = DEFAULT_USER_AGENT,
    cancel: Optional[threading.Event] = None,
) -> ReconciliationResult:
    """Re-extract the claim's source URL and reconcile against it.

    A fetch or parse failure leaves the stage UNKNOWN instead of raising;
    only cancellation propagates.
    """
    url = old.get(URL_KEY)
    if not isinstance(url, str) or not url:
        return _unknown("MISSING_SOURCE_URL", "Claim carries no source URL to re-check")

    try:
        details = scrape_trade_name_details(
            url, client=client, timeout=timeout, user_agent=user_agent, cancel=cancel
        )
    except NetworkError as e:
        logger.warning("Re-extraction of %s failed: %s", url, e)
        return _unknown(e.code, str(e), e.details)
    except VerificationCancelled:
        raise
    except Exception as e:
        logger.exception("Re-extraction of %s could not be parsed", url)
        failure = ExtractionError(
            f"Could not extract trade name details from {url}: {e}",
            details={"url": url, "error_type": type(e).__name__},
        )
        return _unknown(failure.code, str(failure), failure.details)

    return reconcile(old, live_data(details, url))


def _unknown(code: str, message: str, details: dict | None = None) -> ReconciliationResult:
    return ReconciliationResult(
        status=StageStatus.UNKNOWN,
        log=[LogEntry(log_type=LogType.ERROR, message=f"Data verification could not run: {message}")],
        errors=[StageError(code=code, message=message, details=details or {})],
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)
