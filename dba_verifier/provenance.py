"""
Provenance engine port.

The engine owns everything cryptographic about a revision chain: hashing,
linking, signing, and whole-chain verification. This module only defines
the shape we call it through, resolves a concrete engine from settings,
and offers read-only helpers over the chain it returns.

Chain layout (as produced by the engine):
    {"revisions": {<hash>: {<revision fields>}, ...}, "file_index": {...}, ...}

The genesis revision of a form-backed claim carries every claim key with a
"forms_" prefix; the signature revision carries "signature_wallet_address".
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Optional, Protocol

from .config import Credentials
from .exceptions import ConfigurationError
from .models import AquaTreeWrapper, FileObject, LogEntry
from .result import Result

logger = logging.getLogger(__name__)

FORMS_PREFIX = "forms_"
SIGNER_FIELD = "signature_wallet_address"
SIGN_METHOD_CLI = "cli"


class ProvenanceEngine(Protocol):
    """What the claim builder and the Layer-1 verifier need from an engine."""

    def create_genesis_revision(self, file_object: FileObject) -> Result[dict[str, Any]]:
        """Create a form-backed genesis revision for the file content."""
        ...

    def sign_aqua_tree(
        self, wrapper: AquaTreeWrapper, method: str, credentials: Credentials
    ) -> Result[dict[str, Any]]:
        """Append a signature revision and return the extended chain."""
        ...

    def verify_aqua_tree(
        self,
        aqua_tree: dict[str, Any],
        files: list[FileObject],
        credentials: Credentials,
    ) -> Result[list[LogEntry]]:
        """Verify the whole chain against the attested files."""
        ...

    def get_genesis_hash(self, aqua_tree: dict[str, Any]) -> Optional[str]:
        ...

    def order_revisions(self, aqua_tree: dict[str, Any]) -> dict[str, Any]:
        """Return the chain with "revisions" ordered genesis first."""
        ...


def load_engine(path: str) -> ProvenanceEngine:
    """Instantiate an engine from an import path like 'package.module:factory'.

    The factory is called with no arguments.

    Raises:
        ConfigurationError: If the path is empty, malformed or unresolvable, or
            the factory itself raises.
    """
    if not path:
        raise ConfigurationError(
            "No provenance engine configured. Set DBA_PROVENANCE_ENGINE to 'package.module:factory'."
        )

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            f"Invalid provenance engine path {path!r}; expected 'package.module:factory'",
            details={"path": path},
        )

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Cannot load provenance engine {path!r}: {e}",
            details={"path": path},
        ) from e

    try:
        engine: ProvenanceEngine = factory()
    except Exception as e:
        raise ConfigurationError(
            f"Provenance engine factory {path!r} failed: {e}",
            details={"path": path, "error_type": type(e).__name__},
        ) from e

    logger.info("Loaded provenance engine from %s", path)
    return engine


# ─── Read-only Chain Helpers ─────────────────────────────────────────


def revisions_of(aqua_tree: dict[str, Any]) -> dict[str, Any]:
    """The revision map of a chain, or an empty map if it has none."""
    revisions = aqua_tree.get("revisions")
    return revisions if isinstance(revisions, dict) else {}


def ordered_revision_hashes(engine: ProvenanceEngine, aqua_tree: dict[str, Any]) -> list[str]:
    """Revision hashes in chain order, genesis first."""
    return list(revisions_of(engine.order_revisions(aqua_tree)))


def genesis_revision(
    engine: ProvenanceEngine, aqua_tree: dict[str, Any]
) -> Optional[dict[str, Any]]:
    """The genesis revision, or None if the engine cannot locate it."""
    genesis_hash = engine.get_genesis_hash(aqua_tree)
    if not genesis_hash:
        return None
    revision = revisions_of(aqua_tree).get(genesis_hash)
    return revision if isinstance(revision, dict) else None
