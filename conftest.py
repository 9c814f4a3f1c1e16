"""Pytest configuration — project root on sys.path, fake provenance engine, mocked HTTP."""

from __future__ import annotations

import hashlib
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from dba_verifier.config import Credentials, Settings  # noqa: E402
from dba_verifier.models import (  # noqa: E402
    AquaTreeWrapper,
    FileObject,
    LogEntry,
    LogType,
    TradeNameDetails,
)
from dba_verifier.result import Err, Ok  # noqa: E402

REGISTRY_URL = "https://example-registry.gov/x"
RESOLVER_URL = "https://cloudflare-dns.com/dns-query"

ACME_FIELDS: dict[str, str] = {
    "county": "Kings",
    "status": "Active",
    "trade_name": "Acme LLC",
    "file_number": "DBA-2021-000123",
    "formation_date": "01/04/2021",
    "filed_date": "01/05/2021",
    "address_1": "100 Main St",
    "address_2": "Suite 4",
    "city": "Brooklyn",
    "state": "NY",
    "zip_code": "11201",
    "phone": "(718) 555-0100",
    "affiant": "Jane Roe",
    "affiant_title": "Managing Member",
    "parent_company": "Acme Holdings Inc",
    "nature_of_business": "Hardware retail",
    "termination_date": "",
    "last_updated_on": "03/02/2024",
}

_LABELS: dict[str, str] = {
    "county": "County",
    "status": "Status",
    "trade_name": "Trade Name",
    "file_number": "File Number",
    "formation_date": "Formation Date",
    "filed_date": "Filed Date",
    "address_1": "Address 1",
    "address_2": "Address 2",
    "city": "City",
    "state": "State",
    "zip_code": "Zip Code",
    "phone": "Phone",
    "affiant": "Affiant",
    "affiant_title": "Affiant Title",
    "parent_company": "Parent Company",
    "nature_of_business": "Nature of Business",
    "termination_date": "Termination Date",
    "last_updated_on": "Last Updated On",
}


# ─── Fake Provenance Engine ─────────────────────────────────────────


class FakeProvenanceEngine:
    """Deterministic in-memory stand-in for the provenance engine.

    Genesis revisions carry the claim's keys prefixed "forms_" plus a
    SHA-256 of the file content; signing appends a revision whose
    signature_wallet_address is `signer` (defaults to the claimed trade
    name, lower-cased). Verification re-hashes the supplied file.
    """

    def __init__(self, signer: Optional[str] = None):
        self.signer = signer
        self.fail_genesis = False
        self.fail_sign = False
        self.raise_on_verify = False
        self.verify_calls = 0

    def create_genesis_revision(self, file_object: FileObject):
        if self.fail_genesis:
            return Err("genesis rejected")
        content_hash = _sha(file_object.file_content)
        revision: dict[str, Any] = {
            "previous_verification_hash": "",
            "revision_type": "form",
            "file_hash": content_hash,
        }
        for key, value in json.loads(file_object.file_content).items():
            revision[f"forms_{key}"] = value
        genesis_hash = _sha("genesis:" + content_hash)
        return Ok({"revisions": {genesis_hash: revision}, "file_index": {genesis_hash: file_object.file_name}})

    def sign_aqua_tree(self, wrapper: AquaTreeWrapper, method: str, credentials: Credentials):
        if self.fail_sign:
            return Err("signing rejected")
        tree = json.loads(json.dumps(wrapper.aqua_tree))
        last_hash = list(tree["revisions"])[-1]
        genesis = tree["revisions"][last_hash]
        signer = self.signer if self.signer is not None else genesis["forms_trade_name"].lower()
        signature_hash = _sha("signature:" + last_hash + signer)
        # Insert signature first so ordering has real work to do
        tree["revisions"] = {
            signature_hash: {
                "previous_verification_hash": last_hash,
                "revision_type": "signature",
                "signature_type": method,
                "signature_wallet_address": signer,
            },
            **tree["revisions"],
        }
        return Ok(tree)

    def verify_aqua_tree(self, aqua_tree: dict[str, Any], files: list[FileObject], credentials: Credentials):
        self.verify_calls += 1
        if self.raise_on_verify:
            raise RuntimeError("engine exploded")
        genesis = aqua_tree["revisions"].get(self.get_genesis_hash(aqua_tree) or "", {})
        if files and genesis.get("file_hash") == _sha(files[0].file_content):
            return Ok([LogEntry(log_type=LogType.INFO, message="File hash matches")])
        return Err(
            "file hash mismatch",
            logs=[LogEntry(log_type=LogType.ERROR, message="File hash does not match")],
        )

    def get_genesis_hash(self, aqua_tree: dict[str, Any]) -> Optional[str]:
        for revision_hash, revision in aqua_tree.get("revisions", {}).items():
            if revision.get("previous_verification_hash") == "":
                return revision_hash
        return None

    def order_revisions(self, aqua_tree: dict[str, Any]) -> dict[str, Any]:
        revisions = aqua_tree.get("revisions", {})
        current = self.get_genesis_hash(aqua_tree)
        ordered: dict[str, Any] = {}
        while current is not None and current not in ordered:
            ordered[current] = revisions[current]
            current = next(
                (h for h, r in revisions.items() if r.get("previous_verification_hash") == current),
                None,
            )
        return {**aqua_tree, "revisions": ordered}


def failing_engine_factory() -> FakeProvenanceEngine:
    raise RuntimeError("engine bootstrap failed")


def _sha(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def render_registry_page(fields: dict[str, str], extra_rows: Optional[list[tuple[str, str]]] = None) -> str:
    rows = "".join(
        f"<tr><td>{_LABELS[name]}</td><td> {value} </td></tr>" for name, value in fields.items()
    )
    rows += "".join(f"<tr><td>{label}</td><td>{value}</td></tr>" for label, value in extra_rows or [])
    return (
        "<html><head><title>Trade Name Search</title></head><body>"
        "<h1>Business Entity</h1><p>Record details below.</p>"
        '<a href="/search">Back to search</a><img src="/seal.png" alt="Seal">'
        '<table class="table table-bordered table-condensed"><tbody>'
        f"{rows}</tbody></table></body></html>"
    )


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def acme_fields() -> dict[str, str]:
    return dict(ACME_FIELDS)


@pytest.fixture
def acme_details() -> TradeNameDetails:
    return TradeNameDetails(**ACME_FIELDS)


@pytest.fixture
def engine() -> FakeProvenanceEngine:
    return FakeProvenanceEngine()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(mnemonic="test test test", witness_method="cli")


@pytest.fixture
def settings() -> Settings:
    return Settings(dns_resolver_url=RESOLVER_URL, fetch_timeout=5.0, dns_timeout=5.0)


@pytest.fixture
def registry_page() -> Callable[..., str]:
    return render_registry_page


@pytest.fixture
def make_client() -> Callable[..., httpx.Client]:
    """Build an httpx.Client that serves registry pages and DoH answers from memory.

    pages:       url → (status, html) or html
    ds_answers:  list for the DoH "Answer" field (None omits the field)
    dns_status:  HTTP status of the resolver
    """

    def factory(
        pages: dict[str, Any],
        ds_answers: Optional[list] = None,
        dns_status: int = 200,
        dns_body: Optional[str] = None,
        requests: Optional[list[httpx.Request]] = None,
    ) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            if str(request.url).startswith(RESOLVER_URL):
                if dns_body is not None:
                    return httpx.Response(dns_status, text=dns_body)
                payload: dict[str, Any] = {"Status": 0}
                if ds_answers is not None:
                    payload["Answer"] = ds_answers
                return httpx.Response(dns_status, json=payload)
            page = pages.get(str(request.url))
            if page is None:
                return httpx.Response(404, text="not found")
            status, html = page if isinstance(page, tuple) else (200, page)
            return httpx.Response(status, text=html)

        return httpx.Client(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def ds_record() -> list[dict[str, Any]]:
    return [{"name": "example-registry.gov", "type": 43, "TTL": 3600, "data": "2371 13 2 ABCDEF"}]
