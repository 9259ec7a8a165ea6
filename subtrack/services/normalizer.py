import re
from types import MappingProxyType
from typing import Iterable, List, Optional, Sequence

def clean_text(s: Optional[str]) -> Optional[str]:
    if not s:
        return s
    s = re.sub(r"\s+", " ", s).strip()
    return s

def unique_keep_order(items: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for x in items:
        if x not in seen:
            out.append(x)
            seen.add(x)
    return out


# Canonical codes follow the GEO set used on the rankings board.
_ALIASES = {
    "USA": ("US", "USA", "U S A", "UNITED STATES", "UNITED STATES OF AMERICA", "AMERICA", ".US"),
    "UK": ("UK", "GB", "GBR", "UNITED KINGDOM", "GREAT BRITAIN", "BRITAIN", "ENGLAND", ".UK", ".CO.UK"),
    "CA": ("CA", "CAN", "CANADA", ".CA"),
    "AU": ("AU", "AUS", "AUSTRALIA", ".AU", ".COM.AU"),
    "NZ": ("NZ", "NZL", "NEW ZEALAND", ".NZ", ".CO.NZ"),
    "ZA": ("ZA", "ZAF", "RSA", "SOUTH AFRICA", ".ZA", ".CO.ZA"),
    "IE": ("IE", "IRL", "IRELAND", "EIRE", ".IE"),
    "DE": ("DE", "DEU", "GER", "GERMANY", "DEUTSCHLAND", ".DE"),
    "IT": ("IT", "ITA", "ITALY", "ITALIA", ".IT"),
    "SE": ("SE", "SWE", "SWEDEN", "SVERIGE", ".SE"),
    "NL": ("NL", "NLD", "NETHERLANDS", "THE NETHERLANDS", "HOLLAND", ".NL"),
    "FR": ("FR", "FRA", "FRANCE", ".FR"),
    "ES": ("ES", "ESP", "SPAIN", "ESPANA", ".ES"),
    "NO": ("NO", "NOR", "NORWAY", ".NO"),
    "FI": ("FI", "FIN", "FINLAND", ".FI"),
    "DK": ("DK", "DNK", "DENMARK", ".DK"),
    "AT": ("AT", "AUT", "AUSTRIA", ".AT"),
    "CH": ("CH", "CHE", "SWITZERLAND", ".CH"),
    "IN": ("IN", "IND", "INDIA", ".IN"),
    "BR": ("BR", "BRA", "BRAZIL", "BRASIL", ".BR"),
    "MX": ("MX", "MEX", "MEXICO", ".MX"),
    "JP": ("JP", "JPN", "JAPAN", ".JP"),
}

GEO_ALIASES = MappingProxyType(
    {alias: code for code, aliases in _ALIASES.items() for alias in aliases}
)

_PUNCT_RE = re.compile(r"[^\w\s\-]")
_SPLIT_RE = re.compile(r"[-|]")


def _squash(label: str) -> str:
    label = _PUNCT_RE.sub(" ", label.upper()).replace("_", " ")
    return re.sub(r"\s+", " ", label).strip()


def normalize_geo(label: Optional[str]) -> str:
    """Map a free-text country/region label to a canonical GEO code.

    Unmapped labels come back as their normalized form so the caller can
    flag them for setup; nothing here raises.
    """
    if not label:
        return ""
    raw = re.sub(r"\s+", " ", label.upper()).strip()
    if raw in GEO_ALIASES:
        return GEO_ALIASES[raw]
    norm = _squash(label)
    if norm in GEO_ALIASES:
        return GEO_ALIASES[norm]
    for part in _SPLIT_RE.split(raw):
        part = part.strip()
        hit = GEO_ALIASES.get(part) or GEO_ALIASES.get(_squash(part))
        if hit:
            return hit
    return norm


def match_geo(label: Optional[str], geos: Sequence):
    """Known GEO whose code or name normalizes to the same code as ``label``."""
    candidate = normalize_geo(label)
    if not candidate:
        return None
    for geo in geos:
        if normalize_geo(geo.code) == candidate or normalize_geo(geo.name) == candidate:
            return geo
    return None
