from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable, Iterable

from googleapiclient.errors import HttpError


logger = logging.getLogger(__name__)

_RANGE_PARSE_MESSAGE = "unable to parse range"
_TITLE_NOISE_RE = re.compile(r"[\s_-]+")


@dataclass(frozen=True)
class ParsedRange:
    sheet_name: str | None
    cell_range: str


def parse_range(range_a1: str) -> ParsedRange:
    if "!" not in range_a1:
        return ParsedRange(sheet_name=None, cell_range=range_a1)
    raw_sheet, raw_cells = range_a1.rsplit("!", 1)
    sheet_name = raw_sheet.strip().strip("'").strip()
    return ParsedRange(sheet_name=sheet_name or None, cell_range=raw_cells.strip())


def normalize_sheet_title(title: str) -> str:
    title = title.strip().replace("'", "").replace('"', "")
    return _TITLE_NOISE_RE.sub("", title).casefold()


def quote_sheet_title(title: str) -> str:
    return f"'{title}'" if " " in title else title


def _error_status(error: Exception) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(getattr(error, "resp", None), "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _error_message(error: Exception) -> str:
    parts = [str(getattr(error, "reason", "") or "")]
    content = getattr(error, "content", None)
    if isinstance(content, bytes):
        parts.append(content.decode("utf-8", errors="replace"))
    elif content:
        parts.append(str(content))
    parts.append(str(error))
    return " ".join(parts)


def is_range_parse_error(error: Exception) -> bool:
    """True only for a 400 whose message says the A1 range could not be parsed."""
    if not isinstance(error, HttpError):
        return False
    return _error_status(error) == 400 and _RANGE_PARSE_MESSAGE in _error_message(error).casefold()


def match_sheet_title(sheet_name: str, available: Iterable[str]) -> str | None:
    target = normalize_sheet_title(sheet_name)
    for title in available:
        if title and normalize_sheet_title(title) == target:
            return title
    return None


def resolve_range(
    range_a1: str,
    error: Exception,
    *,
    list_titles: Callable[[], list[str]],
) -> str | None:
    """
    Work out a corrected range after a failed read, or None if there is none.

    Only a range-parse error on a range that names a tab is eligible. The tab
    titles are read once and compared after normalization (quotes, whitespace,
    underscores and hyphens dropped; case folded).
    """
    if not is_range_parse_error(error):
        return None

    parsed = parse_range(range_a1)
    if not parsed.sheet_name:
        return None

    try:
        available = list_titles()
    except Exception:  # noqa: BLE001
        logger.exception("Failed to inspect spreadsheet metadata")
        return None

    match = match_sheet_title(parsed.sheet_name, available)
    if match is None:
        logger.error(
            'Configured sheet "%s" not found. Available sheets: %s', parsed.sheet_name, ", ".join(available)
        )
        return None

    safe_title = quote_sheet_title(match)
    return f"{safe_title}!{parsed.cell_range}" if parsed.cell_range else safe_title
