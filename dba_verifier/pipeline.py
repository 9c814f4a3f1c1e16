"""
Claim verification pipeline — orchestrates the two verification layers.

Flow:
  ┌──────────────────────┐
  │ claim + signed chain │
  └──────────┬───────────┘
             │
      ┌──────▼──────┐
      │   Layer 1   │   ← Engine verification + signer binding
      └──────┬──────┘
             │
       ┌─────┴──────┐
       │            │
  ┌────▼────┐  ┌────▼──────────┐
  │ Domain  │  │ Reconcile vs. │   ← Layer 2 (independent; may run in parallel)
  │ (DNSSEC)│  │ live registry │
  └────┬────┘  └────┬──────────┘
       │            │
       └─────┬──────┘
      ┌──────▼──────┐
      │   Outcome   │   ← The only place the overall verdict is computed
      └─────────────┘

Design principles:
  - Every stage always runs and always returns a result object. A failed
    Layer 1 does not skip Layer 2; the more a single run explains, the better.
  - Stages return structured log entries; nothing here prints.
  - Only SetupError (before the run) and VerificationCancelled escape.
  - No state survives a run, so re-running against unchanged inputs
    yields an identical outcome.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

import httpx

from .claim import load_claim_pair
from .config import Credentials, Settings
from .domain_trust import verify_domain
from .layer_one import verify_layer_one
from .models import (
    AquaTreeWrapper,
    DomainTrustResult,
    LogEntry,
    LogType,
    ReconciliationResult,
    StageError,
    StageStatus,
    VerificationOutcome,
)
from .network import raise_if_cancelled
from .provenance import FORMS_PREFIX, ProvenanceEngine, genesis_revision
from .reconciliation import URL_KEY, old_data_from_genesis, reconcile_with_source

logger = logging.getLogger(__name__)


class ClaimVerificationPipeline:
    """Orchestrates the full claim verification workflow.

    Usage:
        pipeline = ClaimVerificationPipeline(engine, credentials)
        outcome = pipeline.verify_file("info.json")
        if not outcome.overall_pass:
            # claim no longer holds — inspect outcome.layer1 / domain_trust / reconciliation
            ...
    """

    def __init__(
        self,
        engine: ProvenanceEngine,
        credentials: Credentials,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.engine = engine
        self.credentials = credentials
        self.settings = settings or Settings()
        self.client = client

    def verify_file(
        self, claim_path: str | Path, cancel: Optional[threading.Event] = None
    ) -> VerificationOutcome:
        """Load <claim> and signed_<claim>, then run the pipeline.

        Raises:
            SetupError: If either file is missing, before any stage runs.
        """
        return self.run(load_claim_pair(claim_path), cancel=cancel)

    def run(
        self, wrapper: AquaTreeWrapper, cancel: Optional[threading.Event] = None
    ) -> VerificationOutcome:
        """Execute Layer 1, then both Layer 2 checks, and compose the outcome."""
        # ── Layer 1: chain integrity ────────────────────────────────
        raise_if_cancelled(cancel, "chain verification")
        logger.info("Starting Layer 1 verification...")
        layer1 = verify_layer_one(self.engine, wrapper, self.credentials)

        # ── Layer 2: domain trust + reconciliation ──────────────────
        genesis = self._genesis(wrapper.aqua_tree)
        if genesis is None:
            claim_url = None
            domain_trust = DomainTrustResult(
                status=StageStatus.UNKNOWN,
                log=[_missing_genesis_log()],
                errors=[_missing_genesis_error()],
            )
            reconciliation = ReconciliationResult(
                status=StageStatus.UNKNOWN,
                log=[_missing_genesis_log()],
                errors=[_missing_genesis_error()],
            )
        else:
            old_data = old_data_from_genesis(genesis)
            claim_url = genesis.get(f"{FORMS_PREFIX}{URL_KEY}")
            if not isinstance(claim_url, str):
                claim_url = None
            logger.info("Starting Layer 2 verification for %s", claim_url)
            domain_trust, reconciliation = self._layer_two(claim_url, old_data, cancel)

        # ── Outcome ─────────────────────────────────────────────────
        overall = (
            layer1.passed
            and domain_trust.verified
            and reconciliation.passed
            and not reconciliation.structural_mismatch
        )
        logger.info("Verification finished: overall_pass=%s", overall)

        return VerificationOutcome(
            claim_url=claim_url,
            layer1_pass=layer1.passed,
            layer1_log=layer1.log,
            domain_verified=domain_trust.verified,
            field_diffs=reconciliation.field_diffs,
            structural_mismatch=reconciliation.structural_mismatch,
            overall_pass=overall,
            layer1=layer1,
            domain_trust=domain_trust,
            reconciliation=reconciliation,
        )

    # ─── Layer 2 ─────────────────────────────────────────────────────

    def _layer_two(
        self,
        claim_url: Optional[str],
        old_data: dict[str, Any],
        cancel: Optional[threading.Event],
    ) -> tuple[DomainTrustResult, ReconciliationResult]:
        def check_domain() -> DomainTrustResult:
            return verify_domain(
                claim_url,
                resolver_url=self.settings.dns_resolver_url,
                client=self.client,
                timeout=self.settings.dns_timeout,
                cancel=cancel,
            )

        def check_data() -> ReconciliationResult:
            return reconcile_with_source(
                old_data,
                client=self.client,
                timeout=self.settings.fetch_timeout,
                user_agent=self.settings.user_agent,
                cancel=cancel,
            )

        if not self.settings.parallel_layer2:
            return check_domain(), check_data()

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="layer2") as pool:
            domain_future = pool.submit(check_domain)
            data_future = pool.submit(check_data)
            return domain_future.result(), data_future.result()

    def _genesis(self, aqua_tree: dict[str, Any]) -> Optional[dict[str, Any]]:
        try:
            return genesis_revision(self.engine, aqua_tree)
        except Exception:
            logger.exception("Provenance engine raised while locating the genesis revision")
            return None


def _missing_genesis_error() -> StageError:
    return StageError(
        code="GENESIS_NOT_FOUND",
        message="Genesis revision not found; claim data cannot be re-checked",
    )


def _missing_genesis_log() -> LogEntry:
    return LogEntry(log_type=LogType.ERROR, message="Genesis revision not found")
