"""Extraction — markup to the monitored plain-text region.

Uses selectolax; malformed markup or an unusable selector degrades to empty
text instead of failing the feed.
"""
from __future__ import annotations

import logging

from selectolax.lexbor import LexborHTMLParser

from mft.errors import ParseError
from mft.schemas.feed import DEFAULT_SELECTOR

logger = logging.getLogger(__name__)

_NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]


def _normalize_lines(text: str) -> str:
    lines = (line.strip() for line in (text or "").splitlines())
    return "\n".join(line for line in lines if line)


def _parse(html: str) -> LexborHTMLParser:
    try:
        tree = LexborHTMLParser(html or "")
        tree.strip_tags(_NON_CONTENT_TAGS)
        return tree
    except Exception as exc:
        raise ParseError(f"unparseable markup: {exc}") from exc


def _select_text(tree: LexborHTMLParser, selector: str) -> str:
    try:
        nodes = tree.css(selector)
    except Exception as exc:
        raise ParseError(f"invalid selector {selector!r}: {exc}") from exc
    chunks = [node.text(deep=True) for node in nodes]
    return _normalize_lines("\n".join(chunks))


def extract_region(html: str, selector: str = DEFAULT_SELECTOR) -> str:
    """Text content of every node matching ``selector``.

    Source line breaks are kept; each line is trimmed and blank lines are
    dropped. A selector matching nothing gives ``""``.
    """
    try:
        return _select_text(_parse(html), selector or DEFAULT_SELECTOR)
    except ParseError as exc:
        logger.warning("Extraction degraded to empty text: %s", exc)
        return ""


def extract_title(html: str, url: str = "") -> str:
    """Best-effort page title: ``<title>``, then ``og:title``, then the URL."""
    try:
        tree = LexborHTMLParser(html or "")
        node = tree.css_first("title")
        if node:
            title = node.text(strip=True)
            if title:
                return " ".join(title.split())[:2000]
        og = tree.css_first("meta[property='og:title']")
        if og:
            content = (og.attributes or {}).get("content")
            if content and content.strip():
                return " ".join(content.split())[:2000]
    except Exception as exc:
        logger.debug("Title extraction failed for %s: %s", url, exc)
    return url


def extract_page(html: str, selector: str, url: str = "") -> tuple[str, str]:
    return extract_region(html, selector), extract_title(html, url)
