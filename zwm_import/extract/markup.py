"""Field extraction from HTML fragments embedded in table cells."""

from __future__ import annotations

import json
import re
from typing import Mapping
from urllib.parse import unquote

from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString

from zwm_import.common.config_loader import ColumnNames
from zwm_import.common.models import ExtractedFields

_WHITESPACE_RUN_RE = re.compile(r"\s+")


def _soup(fragment: str | None) -> BeautifulSoup:
    return BeautifulSoup(fragment or "", "html.parser")


def decode_display_name(text: str) -> str:
    """Collapse newlines and decode escape sequences stored in display names.

    Source cells sometimes hold names as JSON escapes (``\\u00e9``) or
    percent-encoded text. Text that is not a valid JSON string body, or that
    decodes to something UTF-8 cannot hold, is kept as is.
    """
    collapsed = text.replace("\n", " ").strip()
    try:
        decoded = json.loads(f'"{collapsed}"')
    except json.JSONDecodeError:
        decoded = collapsed
    try:
        decoded.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogate escapes cannot be written out as UTF-8.
        decoded = collapsed
    return unquote(decoded)


def extract_name(fragment: str | None) -> str:
    anchor = _soup(fragment).find("a")
    if anchor is None:
        return ""
    return decode_display_name(anchor.get_text())


def extract_link(fragment: str | None) -> str | None:
    anchor = _soup(fragment).find("a")
    if anchor is None:
        return None
    href = anchor.get("href")
    return href or None


def extract_contacts(fragment: str | None) -> list[str]:
    texts = (anchor.get_text() for anchor in _soup(fragment).find_all("a"))
    return [text for text in texts if text]


def extract_image_src(fragment: str | None) -> str | None:
    image = _soup(fragment).find("img")
    if image is None:
        return None
    src = image.get("src")
    return src or None


def _direct_text_nodes(element) -> list[str]:
    return [
        str(child)
        for child in element.children
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString)
    ]


def extract_crowdfunding_address(fragment: str | None) -> str:
    """Join the text sitting directly inside ``div`` containers.

    The cell is wrapped in an extra ``div`` first, so bare text at the top of
    the cell counts too. Text nested in other elements (``<b>``, ``<a>``...) is
    skipped.
    """
    soup = _soup(f"<div>{fragment or ''}</div>")
    parts: list[str] = []
    for container in soup.find_all("div"):
        parts.extend(_direct_text_nodes(container))
    return _WHITESPACE_RUN_RE.sub(" ", " ".join(parts)).strip()


def extract_fields(row: Mapping[str, str], columns: ColumnNames | None = None) -> ExtractedFields:
    columns = columns or ColumnNames()
    shop = row.get(columns.shop, "")
    return ExtractedFields(
        name=extract_name(shop),
        link_href=extract_link(row.get(columns.location, "")),
        contacts=tuple(extract_contacts(row.get(columns.contact, ""))),
        image_src=extract_image_src(shop),
    )
