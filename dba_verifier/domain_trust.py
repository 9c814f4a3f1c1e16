"""
Domain trust — DNSSEC delegation check for the claim's source domain.

Asks a DNS-over-HTTPS resolver for DS records of the source hostname. A
DS record at the parent zone means the domain's answers are signed and
verifiable. The check is fail-closed and never raises past this module:
any problem reaching or understanding the resolver reads as "not
verified" (status UNKNOWN), while a clean answer without DS records reads
as FAILED.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional
from urllib.parse import urlsplit

import httpx

from .models import DomainTrustResult, LogEntry, LogType, StageError, StageStatus
from .network import client_scope, raise_if_cancelled

logger = logging.getLogger(__name__)

DEFAULT_RESOLVER_URL = "https://cloudflare-dns.com/dns-query"
DNS_JSON_MEDIA_TYPE = "application/dns-json"


def verify_domain(
    url: Optional[str],
    *,
    resolver_url: str = DEFAULT_RESOLVER_URL,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
    cancel: Optional[threading.Event] = None,
) -> DomainTrustResult:
    """Check whether the hostname of `url` has DS records.

    Returns:
        DomainTrustResult; `verified` is True only for a 2xx answer with at
        least one DS entry.

    Raises:
        VerificationCancelled: If the cancellation signal is set. Nothing else.
    """
    hostname = _hostname(url)
    if hostname is None:
        return _unknown(
            None,
            "INVALID_SOURCE_URL",
            f"Cannot extract a hostname from source URL {url!r}",
        )

    raise_if_cancelled(cancel, "DNS query")
    logger.info("Querying DS records for %s", hostname)

    try:
        with client_scope(client, timeout) as http:
            response = http.get(
                resolver_url,
                params={"name": hostname, "type": "DS"},
                headers={"accept": DNS_JSON_MEDIA_TYPE},
                timeout=timeout,
            )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning("DS query for %s failed: %s", hostname, e)
        return _unknown(hostname, "NETWORK_ERROR", f"DNS query failed: {e}")

    if not response.is_success:
        return _unknown(
            hostname,
            "NETWORK_ERROR",
            f"Resolver returned HTTP {response.status_code}",
            {"status_code": response.status_code},
        )

    try:
        data = response.json()
    except ValueError:
        return _unknown(hostname, "MALFORMED_RESPONSE", "Resolver response is not JSON")

    answers = data.get("Answer") if isinstance(data, dict) else None
    if isinstance(answers, list) and answers:
        return DomainTrustResult(
            status=StageStatus.PASSED,
            hostname=hostname,
            ds_record_count=len(answers),
            log=[LogEntry(log_type=LogType.SUCCESS, message="Domain verified successfully")],
        )

    return DomainTrustResult(
        status=StageStatus.FAILED,
        hostname=hostname,
        log=[LogEntry(log_type=LogType.ERROR, message="Domain verification failed")],
        errors=[
            StageError(
                code="NO_DS_RECORDS",
                message=f"No DS records found for {hostname}",
                details={"hostname": hostname},
            )
        ],
    )


def _hostname(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    try:
        return urlsplit(url).hostname or None
    except ValueError:
        return None


def _unknown(
    hostname: Optional[str], code: str, message: str, details: dict | None = None
) -> DomainTrustResult:
    return DomainTrustResult(
        status=StageStatus.UNKNOWN,
        hostname=hostname,
        log=[LogEntry(log_type=LogType.ERROR, message="Domain verification failed")],
        errors=[StageError(code=code, message=message, details=details or {})],
    )
