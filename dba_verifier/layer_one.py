"""
Layer 1 — chain integrity.

Two independent checks, both always run and both always reported:
  1. The provenance engine's whole-chain verification of the stored claim.
  2. The signer binding: the chain has at least two revisions and the
     second revision's signature_wallet_address equals the genesis
     revision's forms_trade_name, ignoring case.

The binding check compares a wallet address with a business name. That is
what deployed claims were checked against, so it is kept as-is; it is a
weak heuristic, not proof of legal authority.
"""

from __future__ import annotations

import logging
from typing import Any

from .config import Credentials
from .exceptions import BindingMismatchError, ChainIntegrityError
from .models import AquaTreeWrapper, Layer1Result, LogEntry, LogType, StageError, StageStatus
from .provenance import (
    FORMS_PREFIX,
    SIGNER_FIELD,
    ProvenanceEngine,
    ordered_revision_hashes,
    revisions_of,
)
from .result import Err, Ok, unexpected_result

logger = logging.getLogger(__name__)

TRADE_NAME_FIELD = f"{FORMS_PREFIX}trade_name"
MIN_REVISIONS = 2


def verify_layer_one(
    engine: ProvenanceEngine,
    wrapper: AquaTreeWrapper,
    credentials: Credentials,
) -> Layer1Result:
    """Run the engine verification and the binding check; never raises."""
    log: list[LogEntry] = []
    errors: list[StageError] = []

    engine_verified = _engine_verification(engine, wrapper, credentials, log, errors)
    binding = _binding_check(engine, wrapper.aqua_tree, log, errors)

    passed = engine_verified and binding["passed"] and binding["revision_count"] >= MIN_REVISIONS
    return Layer1Result(
        status=StageStatus.PASSED if passed else StageStatus.FAILED,
        engine_verified=engine_verified,
        revision_count=binding["revision_count"],
        binding_passed=binding["passed"],
        signer_address=binding["signer"],
        trade_name=binding["trade_name"],
        log=log,
        errors=errors,
    )


# ─── Engine Verification ─────────────────────────────────────────────


def _engine_verification(
    engine: ProvenanceEngine,
    wrapper: AquaTreeWrapper,
    credentials: Credentials,
    log: list[LogEntry],
    errors: list[StageError],
) -> bool:
    """Whole-chain verification. Engine logs are kept on success and failure alike."""
    try:
        result = engine.verify_aqua_tree(wrapper.aqua_tree, [wrapper.file_object], credentials)
    except Exception as e:
        logger.exception("Provenance engine raised during verification")
        error = ChainIntegrityError(f"Provenance engine raised: {e}")
        log.append(LogEntry(log_type=LogType.ERROR, message=str(error)))
        errors.append(_stage_error(error))
        return False

    if isinstance(result, Ok):
        log.append(LogEntry(log_type=LogType.SUCCESS, message="AquaTree verified successfully"))
        log.extend(result.value)
        return True
    if isinstance(result, Err):
        log.append(LogEntry(log_type=LogType.ERROR, message="AquaTree verification failed"))
        log.extend(result.logs)
        errors.append(
            _stage_error(ChainIntegrityError(result.error, details={"engine_error": result.error}))
        )
        return False
    raise unexpected_result(result)


# ─── Signer Binding ──────────────────────────────────────────────────


def _binding_check(
    engine: ProvenanceEngine,
    aqua_tree: dict[str, Any],
    log: list[LogEntry],
    errors: list[StageError],
) -> dict[str, Any]:
    outcome: dict[str, Any] = {
        "passed": False,
        "revision_count": 0,
        "signer": None,
        "trade_name": None,
    }

    try:
        hashes = ordered_revision_hashes(engine, aqua_tree)
        genesis_hash = engine.get_genesis_hash(aqua_tree)
    except Exception as e:
        logger.exception("Provenance engine raised while ordering revisions")
        errors.append(
            StageError(code="CHAIN_UNREADABLE", message=f"Could not order revisions: {e}")
        )
        log.append(LogEntry(log_type=LogType.ERROR, message="Revisions could not be ordered"))
        return outcome

    outcome["revision_count"] = len(hashes)
    revisions = revisions_of(aqua_tree)
    genesis = revisions.get(genesis_hash) if genesis_hash else None

    if not isinstance(genesis, dict):
        errors.append(StageError(code="GENESIS_NOT_FOUND", message="Genesis revision not found"))
        log.append(LogEntry(log_type=LogType.ERROR, message="Genesis revision not found"))
        return outcome

    trade_name = genesis.get(TRADE_NAME_FIELD)
    outcome["trade_name"] = trade_name

    if len(hashes) < MIN_REVISIONS:
        errors.append(
            StageError(
                code="REVISION_COUNT_LOW",
                message=f"Chain has {len(hashes)} revision(s); a signed claim needs {MIN_REVISIONS}",
                details={"revision_count": len(hashes)},
            )
        )
        log.append(LogEntry(log_type=LogType.ERROR, message="Second revision not found"))
        return outcome

    second = revisions.get(hashes[1])
    signer = second.get(SIGNER_FIELD) if isinstance(second, dict) else None
    outcome["signer"] = signer

    if (
        isinstance(signer, str)
        and isinstance(trade_name, str)
        and signer.lower() == trade_name.lower()
    ):
        outcome["passed"] = True
        log.append(
            LogEntry(
                log_type=LogType.SUCCESS,
                message=f"Second revision {SIGNER_FIELD} matches first revision {TRADE_NAME_FIELD}",
            )
        )
        return outcome

    error = BindingMismatchError(
        f"Second revision {SIGNER_FIELD} does not match first revision {TRADE_NAME_FIELD}",
        details={"signer_address": signer, "trade_name": trade_name},
    )
    errors.append(_stage_error(error))
    log.append(LogEntry(log_type=LogType.ERROR, message=str(error)))
    return outcome


def _stage_error(error: ChainIntegrityError | BindingMismatchError) -> StageError:
    return StageError(code=error.code, message=str(error), details=error.details)
