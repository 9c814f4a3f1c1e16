#!/usr/bin/env python3
"""
DBA Claim Verifier — Entry Point
================================

Scrape a registry page, turn it into a signed claim, or verify a claim
against its chain and against the live registry.

Usage:
    python main.py scrape --url <registry-url> [--output output.json]
    python main.py claim  --url <registry-url> [--output-dir .] [--name info.json]
    python main.py verify info.json [--json]

Signing and verification need a provenance engine:
    DBA_PROVENANCE_ENGINE=package.module:factory  (see .env)

Exit codes: 0 = claim verified, 1 = verification failed, 2 = setup/config error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dba_verifier.claim import DEFAULT_CLAIM_FILE, create_claim
from dba_verifier.config import load_settings
from dba_verifier.exceptions import ClaimVerificationError, ExtractionError, NetworkError
from dba_verifier.extractor import scrape
from dba_verifier.models import LogEntry, LogType, StageStatus, VerificationOutcome
from dba_verifier.pipeline import ClaimVerificationPipeline
from dba_verifier.provenance import load_engine

logger = logging.getLogger("dba_verifier.cli")

# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72

_LOG_EMOJI: dict[LogType, str] = {
    LogType.SUCCESS: "✅",
    LogType.ERROR: "❌",
    LogType.INFO: "💡",
    LogType.WARNING: "🚨",
    LogType.HINT: "🔆",
    LogType.DEBUG: "🐞",
}

_STATUS_STYLE: dict[StageStatus, tuple[str, str]] = {
    StageStatus.PASSED: (_GREEN, "PASSED"),
    StageStatus.FAILED: (_RED, "FAILED"),
    StageStatus.UNKNOWN: (_YELLOW, "NOT EVALUATED"),
}


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_log(entries: list[LogEntry]) -> None:
    for entry in entries:
        print(f"    {_LOG_EMOJI[entry.log_type]} {entry.message}")


def _print_stage(title: str, status: StageStatus, entries, errors) -> None:
    color, label = _STATUS_STYLE[status]
    print(f"\n  {_BOLD}>> {title}{_RESET}  {color}{_BOLD}{label}{_RESET}")
    _print_log(entries)
    for err in errors:
        print(f"    {color}[{err.code}]{_RESET} {err.message}")
        for k, v in err.details.items():
            print(f"      {_DIM}{k}: {v}{_RESET}")


def _print_field_diffs(outcome: VerificationOutcome) -> None:
    if not outcome.field_diffs:
        return
    print(f"\n  {_BOLD}Claim data vs. registry{_RESET}")
    for diff in outcome.field_diffs:
        mark = f"{_GREEN}✅" if diff.match else f"{_RED}❌"
        print(f"    {mark} {diff.field}{_RESET}")
        print(f"      {_DIM}Old value: {diff.old_value}{_RESET}")
        print(f"      {_DIM}New value: {diff.new_value}{_RESET}")


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(outcome: VerificationOutcome) -> int:
    """Pretty-print the verification outcome in fixed stage order.

    Returns:
        0 if the claim passed, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  DBA CLAIM VERIFICATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Source:      {outcome.claim_url or 'unknown'}")
    print(f"{'─' * _WIDTH}")

    layer1 = outcome.layer1
    print(f"\n  {_BOLD}Verification Layer 1{_RESET}")
    _print_stage("Chain integrity & signer binding", layer1.status, layer1.log, layer1.errors)

    print(f"\n  {_BOLD}Verification Layer 2{_RESET}")
    domain = outcome.domain_trust
    _print_stage(
        f"Domain verification ({domain.hostname or 'no host'})",
        domain.status,
        domain.log,
        domain.errors,
    )
    recon = outcome.reconciliation
    _print_stage("Data verification", recon.status, [], recon.errors)
    if recon.structural_mismatch:
        print(f"      {_DIM}Old keys: {recon.old_keys}{_RESET}")
        print(f"      {_DIM}New keys: {recon.new_keys}{_RESET}")
    _print_field_diffs(outcome)

    print(f"\n{'=' * _WIDTH}")
    if outcome.overall_pass:
        print(f"  {_GREEN}{_BOLD}CLAIM VERIFIED{_RESET}")
    else:
        print(f"  {_RED}{_BOLD}CLAIM NOT VERIFIED{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 0 if outcome.overall_pass else 1


# ─── Commands ───────────────────────────────────────────────────────


def cmd_scrape(args: argparse.Namespace, settings, credentials) -> int:
    page = scrape(args.url, timeout=settings.fetch_timeout, user_agent=settings.user_agent)

    print("\n=== SCRAPING RESULTS ===")
    print(f"Title: {page.title}")
    print(f"Headings found: {len(page.headings)}")
    print(f"Links found: {len(page.links)}")
    print(f"Paragraphs found: {len(page.paragraphs)}")
    print(f"Images found: {len(page.images)}")
    if page.trade_name_details:
        print("\n=== TRADE NAME DETAILS ===")
        print(page.trade_name_details.model_dump_json(indent=2))

    if args.output:
        Path(args.output).write_text(page.model_dump_json(indent=2), encoding="utf-8")
        print(f"\nData saved to: {args.output}")
    return 0


def cmd_claim(args: argparse.Namespace, settings, credentials) -> int:
    page = scrape(args.url, timeout=settings.fetch_timeout, user_agent=settings.user_agent)
    if page.trade_name_details is None:
        raise ExtractionError(
            f"No trade name details found at {args.url}", details={"url": args.url}
        )

    engine = load_engine(settings.provenance_engine)
    artifacts = create_claim(
        engine,
        page.trade_name_details,
        args.url,
        credentials,
        output_dir=args.output_dir,
        file_name=args.name,
        delegated_addresses=settings.delegated_addresses,
        claim_type=settings.claim_type,
    )
    print("Signed AquaTree successfully")
    print(f"  Claim:  {artifacts.claim_path}")
    print(f"  Chain:  {artifacts.signed_path}")
    return 0


def cmd_verify(args: argparse.Namespace, settings, credentials) -> int:
    engine = load_engine(settings.provenance_engine)
    pipeline = ClaimVerificationPipeline(engine, credentials, settings)
    outcome = pipeline.verify_file(args.claim_file)

    if args.json:
        print(outcome.model_dump_json(indent=2))
        return 0 if outcome.overall_pass else 1
    return print_report(outcome)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dba-verifier",
        description="Create and verify signed DBA registry claims.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_scrape = sub.add_parser("scrape", help="Scrape a registry page")
    p_scrape.add_argument("-u", "--url", required=True, help="URL to scrape")
    p_scrape.add_argument("-o", "--output", default="output.json", help="Output file path")
    p_scrape.set_defaults(func=cmd_scrape)

    p_claim = sub.add_parser("claim", help="Scrape a registry page and sign it as a claim")
    p_claim.add_argument("-u", "--url", required=True, help="Registry URL to claim")
    p_claim.add_argument("--output-dir", default=".", help="Directory for the claim files")
    p_claim.add_argument("--name", default=DEFAULT_CLAIM_FILE, help="Claim file name")
    p_claim.set_defaults(func=cmd_claim)

    p_verify = sub.add_parser("verify", help="Verify a claim file and its signed chain")
    p_verify.add_argument("claim_file", help="Claim file; signed_<name> must sit next to it")
    p_verify.add_argument("--json", action="store_true", help="Print the outcome as JSON")
    p_verify.set_defaults(func=cmd_verify)

    return parser


# ─── Main ────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings, credentials = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args, settings, credentials)
    except NetworkError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"{_RED}[{e.code}]{_RESET} {e}", file=sys.stderr)
        return 1
    except ClaimVerificationError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"{_RED}[{e.code}]{_RESET} {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
