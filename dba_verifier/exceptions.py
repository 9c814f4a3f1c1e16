"""
Custom exception hierarchy for claim creation and verification.

Each exception type maps to a specific category of failure. Inside the
verification pipeline these are caught at the stage boundary and turned
into a StageError on the stage result; only SetupError and
VerificationCancelled are allowed to escape a run.
"""

from __future__ import annotations


class ClaimVerificationError(Exception):
    """Base exception for all claim creation and verification failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class NetworkError(ClaimVerificationError):
    """A page fetch or DNS query timed out or returned a non-success status."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("NETWORK_ERROR", message, details)


class SchemaDriftError(ClaimVerificationError):
    """The claimed key set and the live key set differ in size."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SCHEMA_DRIFT", message, details)


class ChainIntegrityError(ClaimVerificationError):
    """The provenance engine rejected the revision chain."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("CHAIN_INTEGRITY_FAILED", message, details)


class BindingMismatchError(ClaimVerificationError):
    """The signer address does not match the claimed trade name."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("BINDING_MISMATCH", message, details)


class SetupError(ClaimVerificationError):
    """The claim file or its signed sibling is missing or unreadable."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("SETUP_ERROR", message, details)


class ProvenanceError(ClaimVerificationError):
    """Genesis creation or signing failed while building a claim."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("PROVENANCE_FAILED", message, details)


class ExtractionError(ClaimVerificationError):
    """The registry page carried no trade name details to claim."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("EXTRACTION_FAILED", message, details)


class ConfigurationError(ClaimVerificationError):
    """A configured collaborator could not be resolved."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class VerificationCancelled(ClaimVerificationError):
    """The cancellation signal was set before a network call."""

    def __init__(self, message: str = "Verification cancelled", details: dict | None = None):
        super().__init__("CANCELLED", message, details)
