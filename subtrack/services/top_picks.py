"""Locate the TOP PICKS LINEUP block of a task description and read its rows.

Descriptions are written by hand (or pasted from spreadsheets) so rows are
loose markdown tables. Long affiliate URLs get wrapped by the editor, which
splits a query string across whitespace or onto the next row; those pieces
are glued back onto the URL they belong to.
"""
import re
from functools import lru_cache
from typing import List, NamedTuple, Optional, Tuple
from subtrack.config import settings
from subtrack.services.html_utils import TRAILING_PUNCT, URL_RE, description_text, is_cloaked
from subtrack.services.normalizer import clean_text, unique_keep_order


SEPARATOR_RE = re.compile(r"^[\s|:\-=_*~+]+$")
HEADER_CELLS = frozenset({
    "#", "no", "no.", "pos", "position", "rank", "brand", "brand name",
    "operator", "casino", "link", "links", "url", "affiliate link",
    "affiliate url", "tracking link", "notes", "bonus", "offer",
})

# "=value" or "&key=value" straight after a URL; bare tokens only count when
# the URL visibly stops mid-parameter
_CONT_QUERY = re.compile(r"^[ \t]*((?:=|&[\w\-\[\].]+=)[^\s|\"'<>]*)")
_CONT_TOKEN = re.compile(r"^[ \t]*([A-Za-z0-9_\-]+)(?=[ \t]*(?:\||$))")
# a wrapped row holding nothing but the rest of a query value
_WRAPPED_VALUE = re.compile(r"^([A-Za-z0-9_\-]+)(?=[ \t]*\|?[ \t]*$)")
_OPEN_VALUE = re.compile(r"[?&][^&=#]+=[^&#]*$")


class SectionLine(NamedTuple):
    text: str
    url: Optional[str]


@lru_cache(maxsize=8)
def _section_re(marker: str) -> re.Pattern:
    return re.compile(
        r"^[^\n]*" + re.escape(marker) + r"[^\n]*(?:\n.*?)??(?=\n#{1,2}[ \t]|\Z)",
        re.M | re.S,
    )


def find_top_picks_section(description: Optional[str], marker: Optional[str] = None) -> Optional[str]:
    """Text from the marker line up to the next level 1-2 heading, or None."""
    marker = marker or settings.TOP_PICKS_MARKER
    text = description_text(description or "")
    m = _section_re(marker).search(text)
    return m.group(0).rstrip() if m else None


def _is_header(line: str) -> bool:
    cells = [c.strip().strip("*_").lower() for c in line.strip().strip("|").split("|")]
    cells = [c for c in cells if c]
    return bool(cells) and all(c in HEADER_CELLS for c in cells)


def _first_url(line: str) -> Optional[Tuple[int, int]]:
    m = URL_RE.search(line)
    if not m:
        return None
    url = m.group(0).rstrip(TRAILING_PUNCT)
    return m.start(), m.start() + len(url)


def _continuation(url: str, rest: str) -> Optional[re.Match]:
    m = _CONT_QUERY.match(rest)
    if m:
        return m
    if url.endswith(("=", "&", "?")):
        return _CONT_TOKEN.match(rest)
    return None


def _wrapped_value(url: str, row: str) -> Optional[re.Match]:
    if not _OPEN_VALUE.search(url):
        return None
    return _WRAPPED_VALUE.match(row)


def iter_section_lines(section: str, marker: Optional[str] = None) -> List[SectionLine]:
    marker = marker or settings.TOP_PICKS_MARKER
    lines = section.splitlines()
    out: List[SectionLine] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        stripped = line.strip()
        if not stripped or marker in line or SEPARATOR_RE.match(stripped) or _is_header(stripped):
            continue
        span = _first_url(line)
        if span is None:
            out.append(SectionLine(clean_text(stripped), None))
            continue
        start, end = span
        url, rest = line[start:end], line[end:]
        while True:
            cont = _continuation(url, rest)
            if cont:
                url += cont.group(1)
                rest = rest[cont.end():]
                continue
            # wrapped onto the next row: the rest of this row is empty
            if rest.strip(" \t|") or i >= len(lines) or URL_RE.search(lines[i]):
                break
            nxt = lines[i].lstrip(" \t|")
            cont = _continuation(url, nxt) or _wrapped_value(url, nxt)
            if not cont:
                break
            url += cont.group(1)
            rest = nxt[cont.end():]
            i += 1
        text = clean_text(line[:start] + url + rest)
        out.append(SectionLine(text, url))
    return out


def extract_affiliate_links(description: Optional[str]) -> List[str]:
    """First URL of every TOP PICKS row, cloaked links left out."""
    section = find_top_picks_section(description)
    if section is None:
        return []
    urls = [ln.url for ln in iter_section_lines(section) if ln.url and not is_cloaked(ln.url)]
    return unique_keep_order(urls)
