"""
Claim building and claim-file persistence.

A claim is serialized exactly once, canonically, and that byte string is
what the provenance engine hashes. Verification re-reads the same bytes
from disk, so the serialization here must never depend on dict insertion
order or platform defaults.

Artifacts (named by convention, side by side):
    <name>          canonical claim JSON
    signed_<name>   the signed revision chain
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import Credentials
from .exceptions import ProvenanceError, SetupError
from .models import (
    DEFAULT_CLAIM_TYPE,
    AquaTreeWrapper,
    ClaimDocument,
    FileObject,
    TradeNameDetails,
)
from .provenance import SIGN_METHOD_CLI, ProvenanceEngine
from .result import Err, Ok, unexpected_result

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_FILE = "info.json"
SIGNED_PREFIX = "signed_"


@dataclass
class ClaimArtifacts:
    """Where a freshly created claim was written."""

    claim_path: Path
    signed_path: Path
    document: ClaimDocument


# ─── Building & Serialization ───────────────────────────────────────


def build_claim_document(
    details: TradeNameDetails,
    url: str,
    delegated_addresses: str = "",
    claim_type: str = DEFAULT_CLAIM_TYPE,
) -> ClaimDocument:
    return ClaimDocument(
        fields=details,
        source_url=url,
        delegated_addresses=delegated_addresses,
        type=claim_type,
    )


def canonical_json(document: ClaimDocument) -> str:
    """The single serialization used at claim time and at verification time.

    Sorted keys, 4-space indent, fixed separators, no ASCII escaping,
    no trailing newline.
    """
    return json.dumps(
        document.to_flat_dict(),
        sort_keys=True,
        indent=4,
        separators=(",", ": "),
        ensure_ascii=False,
    )


def signed_path_for(claim_path: str | Path) -> Path:
    """signed_<name> next to <name>."""
    path = Path(claim_path)
    return path.with_name(f"{SIGNED_PREFIX}{path.name}")


# ─── Claim Creation ─────────────────────────────────────────────────


def create_claim(
    engine: ProvenanceEngine,
    details: TradeNameDetails,
    url: str,
    credentials: Credentials,
    *,
    output_dir: str | Path = ".",
    file_name: str = DEFAULT_CLAIM_FILE,
    delegated_addresses: str = "",
    claim_type: str = DEFAULT_CLAIM_TYPE,
) -> ClaimArtifacts:
    """Build, anchor and sign a claim, then write both artifacts.

    Nothing is written unless both the genesis and the signing call succeed.
    The two writes are not transactional.

    Raises:
        ProvenanceError: If genesis creation or signing fails.
    """
    document = build_claim_document(details, url, delegated_addresses, claim_type)
    content = canonical_json(document)
    file_object = FileObject(file_name=file_name, file_content=content, path=f"./{file_name}")

    genesis = engine.create_genesis_revision(file_object)
    if isinstance(genesis, Err):
        raise ProvenanceError(
            f"Genesis revision could not be created: {genesis.error}",
            details={"stage": "genesis", "error": genesis.error},
        )
    if not isinstance(genesis, Ok):
        raise unexpected_result(genesis)

    wrapper = AquaTreeWrapper(aqua_tree=genesis.value, file_object=file_object)
    signed = engine.sign_aqua_tree(wrapper, SIGN_METHOD_CLI, credentials)
    if isinstance(signed, Err):
        raise ProvenanceError(
            f"Claim could not be signed: {signed.error}",
            details={"stage": "sign", "error": signed.error},
        )
    if not isinstance(signed, Ok):
        raise unexpected_result(signed)

    logger.info("Signed claim for %s", url)

    claim_path = Path(output_dir) / file_name
    signed_path = signed_path_for(claim_path)
    claim_path.write_text(content, encoding="utf-8")
    signed_path.write_text(json.dumps(signed.value, indent=4), encoding="utf-8")
    logger.info("Wrote %s and %s", claim_path, signed_path)

    return ClaimArtifacts(claim_path=claim_path, signed_path=signed_path, document=document)


# ─── Loading ────────────────────────────────────────────────────────


def load_claim_pair(claim_path: str | Path) -> AquaTreeWrapper:
    """Load a claim file and its signed sibling for verification.

    Raises:
        SetupError: If either file is missing or the chain is not a JSON object.
    """
    path = Path(claim_path)
    signed_path = signed_path_for(path)

    missing = [str(p) for p in (path, signed_path) if not p.is_file()]
    if missing:
        raise SetupError(
            f"Cannot verify claim: missing {', '.join(missing)}",
            details={"missing": missing},
        )

    content = path.read_text(encoding="utf-8")
    try:
        aqua_tree: Any = json.loads(signed_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SetupError(
            f"Signed chain {signed_path} is not valid JSON: {e}",
            details={"path": str(signed_path)},
        ) from e
    if not isinstance(aqua_tree, dict):
        raise SetupError(
            f"Signed chain {signed_path} is not a JSON object",
            details={"path": str(signed_path)},
        )

    return AquaTreeWrapper(
        aqua_tree=aqua_tree,
        file_object=FileObject(file_name=path.name, file_content=content, path=f"./{path.name}"),
    )
