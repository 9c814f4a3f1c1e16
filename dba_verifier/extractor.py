"""
Registry page extraction.

Fetches a registry page and parses the trade name table into the 18 fixed
fields. Parsing is deliberately lenient: unknown row labels are skipped so
cosmetic markup drift on the registry side does not break extraction, and
a page without the table is a normal outcome (many entries simply have no
trade name record), not an error.

Output invariant: when details are returned, all 18 fields are present and
default to "". Reconciliation compares key sets, so a missing key would be
indistinguishable from schema drift.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import httpx
import lxml.html
from lxml import etree
from lxml.html import HtmlElement

from .config import DEFAULT_USER_AGENT
from .exceptions import NetworkError
from .models import TRADE_NAME_LABELS, PageImage, PageLink, ScrapedPage, TradeNameDetails
from .network import client_scope, raise_if_cancelled

logger = logging.getLogger(__name__)

# table.table.table-bordered.table-condensed
_TRADE_NAME_TABLE_XPATH = (
    "//table"
    "[contains(concat(' ', normalize-space(@class), ' '), ' table ')]"
    "[contains(concat(' ', normalize-space(@class), ' '), ' table-bordered ')]"
    "[contains(concat(' ', normalize-space(@class), ' '), ' table-condensed ')]"
)

_HEADINGS_XPATH = "//*[self::h1 or self::h2 or self::h3 or self::h4 or self::h5 or self::h6]"


# ─── Fetching ───────────────────────────────────────────────────────


def fetch_page(
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
    user_agent: str = DEFAULT_USER_AGENT,
    cancel: Optional[threading.Event] = None,
) -> str:
    """GET a registry page and return its body text, decoded per the response charset.

    Raises:
        NetworkError: On timeout, transport failure, invalid URL or non-2xx status.
        VerificationCancelled: If the cancellation signal is already set.
    """
    raise_if_cancelled(cancel, "page fetch")
    logger.info("Fetching %s", url)

    try:
        with client_scope(client, timeout) as http:
            response = http.get(url, headers={"User-Agent": user_agent}, timeout=timeout)
            response.raise_for_status()
            return response.text
    except httpx.TimeoutException as e:
        raise NetworkError(
            f"Timed out after {timeout:.0f}s fetching {url}",
            details={"url": url, "timeout": timeout},
        ) from e
    except httpx.HTTPStatusError as e:
        raise NetworkError(
            f"Registry returned HTTP {e.response.status_code} for {url}",
            details={"url": url, "status_code": e.response.status_code},
        ) from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise NetworkError(
            f"Could not fetch {url}: {e}",
            details={"url": url},
        ) from e


# ─── Parsing ────────────────────────────────────────────────────────


def parse_trade_name_details(html: str) -> TradeNameDetails | None:
    """Parse the trade name table out of a registry page.

    Returns:
        TradeNameDetails with all 18 fields, or None when the page has no
        matching table or none of its row labels are recognized.
    """
    document = _parse_document(html)
    if document is None:
        return None

    tables = document.xpath(_TRADE_NAME_TABLE_XPATH)
    if not tables:
        logger.info("No trade name table on page")
        return None

    details: dict[str, str] = {}
    for table in tables:
        for row in table.xpath("./tbody/tr | ./tr"):
            cells = row.xpath("./td")
            if len(cells) < 2:
                continue
            label = cells[0].text_content().strip().lower()
            field_name = TRADE_NAME_LABELS.get(label)
            if field_name is None:
                logger.debug("Ignoring unknown registry label %r", label)
                continue
            details[field_name] = cells[1].text_content().strip()

    if not details:
        return None
    return TradeNameDetails(**details)


def parse_page(html: str, url: str) -> ScrapedPage:
    """Summarize a registry page: title, headings, links, paragraphs, images, details."""
    document = _parse_document(html)
    if document is None:
        return ScrapedPage(url=url)

    titles = document.xpath("//title")
    title = titles[0].text_content().strip() if titles else ""

    headings = [h.text_content().strip() for h in document.xpath(_HEADINGS_XPATH)]

    links = []
    for anchor in document.xpath("//a[@href]"):
        text = anchor.text_content().strip()
        href = anchor.get("href")
        if text and href:
            links.append(PageLink(text=text, href=href))

    images = [
        PageImage(src=img.get("src"), alt=img.get("alt") or "")
        for img in document.xpath("//img[@src]")
        if img.get("src")
    ]

    return ScrapedPage(
        url=url,
        title=title or "No title found",
        headings=[h for h in headings if h],
        links=links,
        paragraphs=[p for p in (el.text_content().strip() for el in document.xpath("//p")) if p],
        images=images,
        trade_name_details=parse_trade_name_details(html),
    )


def _parse_document(html: str) -> HtmlElement | None:
    if not html or not html.strip():
        return None
    # Already decoded; handing lxml UTF-8 bytes lets XHTML pages that open
    # with an <?xml ... encoding=...?> declaration through.
    parser = lxml.html.HTMLParser(encoding="utf-8")
    try:
        return lxml.html.document_fromstring(html.encode("utf-8"), parser=parser)
    except (etree.ParserError, ValueError) as e:
        # e.g. "Document is empty" for a comment-only maintenance stub
        logger.warning("Unparseable registry page: %s", e)
        return None


# ─── Public API ─────────────────────────────────────────────────────


def scrape(
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
    user_agent: str = DEFAULT_USER_AGENT,
    cancel: Optional[threading.Event] = None,
) -> ScrapedPage:
    """Fetch and summarize a registry page. Raises NetworkError on fetch failure."""
    html = fetch_page(url, client=client, timeout=timeout, user_agent=user_agent, cancel=cancel)
    return parse_page(html, url)


def scrape_trade_name_details(
    url: str,
    *,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
    user_agent: str = DEFAULT_USER_AGENT,
    cancel: Optional[threading.Event] = None,
) -> TradeNameDetails | None:
    """Fetch a registry page and return only its trade name details."""
    html = fetch_page(url, client=client, timeout=timeout, user_agent=user_agent, cancel=cancel)
    return parse_trade_name_details(html)
