"""
Pydantic models for claim data — strict typing at every module boundary.

Claims and scraped field sets are frozen: once a claim is built it is
hashed and signed, so nothing downstream may change it. Verification
results are plain models built fresh for every run.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# ─── Field Catalogue ────────────────────────────────────────────────
# Registry table label → field name. Labels are matched after trimming and
# lower-casing the first cell; anything not listed here is ignored.

TRADE_NAME_LABELS: dict[str, str] = {
    "county": "county",
    "status": "status",
    "trade name": "trade_name",
    "file number": "file_number",
    "formation date": "formation_date",
    "filed date": "filed_date",
    "address 1": "address_1",
    "address 2": "address_2",
    "city": "city",
    "state": "state",
    "zip code": "zip_code",
    "phone": "phone",
    "affiant": "affiant",
    "affiant title": "affiant_title",
    "parent company": "parent_company",
    "nature of business": "nature_of_business",
    "termination date": "termination_date",
    "last updated on": "last_updated_on",
}

TRADE_NAME_FIELDS: tuple[str, ...] = tuple(TRADE_NAME_LABELS.values())

DEFAULT_CLAIM_TYPE = "dba_claim"


# ─── Log Vocabulary ─────────────────────────────────────────────────


class LogType(str, Enum):
    """Kind of a structured log entry (mirrors the provenance engine's log types)."""

    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"
    HINT = "hint"
    DEBUG = "debug"


class LogEntry(BaseModel):
    """One line of stage narration, rendered later by the report printer."""

    model_config = ConfigDict(frozen=True)

    log_type: LogType
    message: str


class StageStatus(str, Enum):
    """Outcome of a single verification stage."""

    PASSED = "passed"
    FAILED = "failed"
    UNKNOWN = "unknown"  # Could not be evaluated (network, missing data)


class StageError(BaseModel):
    """Machine-readable failure attached to a stage result."""

    code: str  # e.g. "BINDING_MISMATCH"
    message: str
    details: dict = Field(default_factory=dict)


# ─── Extraction Models ──────────────────────────────────────────────


class TradeNameDetails(BaseModel):
    """The 18 fixed registry fields. Every field is always present."""

    model_config = ConfigDict(frozen=True)

    county: str = ""
    status: str = ""
    trade_name: str = ""
    file_number: str = ""
    formation_date: str = ""
    filed_date: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""
    affiant: str = ""
    affiant_title: str = ""
    parent_company: str = ""
    nature_of_business: str = ""
    termination_date: str = ""
    last_updated_on: str = ""


class PageLink(BaseModel):
    text: str
    href: str


class PageImage(BaseModel):
    src: str
    alt: str = ""


class ScrapedPage(BaseModel):
    """Summary of a fetched registry page."""

    url: str
    title: str = "No title found"
    headings: list[str] = Field(default_factory=list)
    links: list[PageLink] = Field(default_factory=list)
    paragraphs: list[str] = Field(default_factory=list)
    images: list[PageImage] = Field(default_factory=list)
    trade_name_details: Optional[TradeNameDetails] = None


# ─── Claim & Chain ──────────────────────────────────────────────────


class ClaimDocument(BaseModel):
    """A DBA claim: scraped facts plus where they came from."""

    model_config = ConfigDict(frozen=True)

    fields: TradeNameDetails
    source_url: str
    delegated_addresses: str = ""
    type: str = DEFAULT_CLAIM_TYPE

    def to_flat_dict(self) -> dict[str, str]:
        """The on-disk layout: the 18 fields next to url, delegated_addresses and type."""
        flat = self.fields.model_dump()
        flat["url"] = self.source_url
        flat["delegated_addresses"] = self.delegated_addresses
        flat["type"] = self.type
        return flat


class FileObject(BaseModel):
    """A file handed to the provenance engine alongside a chain."""

    file_name: str
    file_content: str
    path: str


class AquaTreeWrapper(BaseModel):
    """A revision chain together with the file content it attests."""

    aqua_tree: dict[str, Any]  # Owned by the provenance engine; read-only here
    file_object: FileObject
    revision: str = ""


# ─── Stage Results ──────────────────────────────────────────────────


class Layer1Result(BaseModel):
    """Chain integrity: engine verdict plus the signer binding check."""

    status: StageStatus
    engine_verified: bool = False
    revision_count: int = 0
    binding_passed: bool = False
    signer_address: Optional[str] = None
    trade_name: Optional[str] = None
    log: list[LogEntry] = Field(default_factory=list)
    errors: list[StageError] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == StageStatus.PASSED


class DomainTrustResult(BaseModel):
    """DNSSEC delegation check for the claim's source domain."""

    status: StageStatus
    hostname: Optional[str] = None
    ds_record_count: int = 0
    log: list[LogEntry] = Field(default_factory=list)
    errors: list[StageError] = Field(default_factory=list)

    @property
    def verified(self) -> bool:
        return self.status == StageStatus.PASSED


class FieldDiff(BaseModel):
    """Claimed value versus live value for one field."""

    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    match: bool


class ReconciliationResult(BaseModel):
    """Field-by-field comparison of claimed data against the live source."""

    status: StageStatus
    structural_mismatch: bool = False
    field_diffs: list[FieldDiff] = Field(default_factory=list)
    mismatch_count: int = 0
    old_keys: list[str] = Field(default_factory=list)
    new_keys: list[str] = Field(default_factory=list)
    log: list[LogEntry] = Field(default_factory=list)
    errors: list[StageError] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status == StageStatus.PASSED


# ─── Verification Outcome ───────────────────────────────────────────


class VerificationOutcome(BaseModel):
    """The final output of the verification pipeline."""

    claim_url: Optional[str] = None
    layer1_pass: bool
    layer1_log: list[LogEntry] = Field(default_factory=list)
    domain_verified: bool
    field_diffs: list[FieldDiff] = Field(default_factory=list)
    structural_mismatch: bool
    overall_pass: bool
    layer1: Layer1Result
    domain_trust: DomainTrustResult
    reconciliation: ReconciliationResult
