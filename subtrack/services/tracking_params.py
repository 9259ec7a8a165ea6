"""Find and rewrite the tracking identifier carried by an affiliate URL.

Affiliate networks disagree on what to call the parameter, so a URL is
scanned against a fixed list of known names. Order matters: the first name
present with a non-empty value wins, which is why ``payload`` is tried
before ``subid`` and friends.
"""
import html
import re
from typing import NamedTuple, Optional, Tuple
from urllib.parse import quote, unquote_plus, urlsplit

TRACKING_PARAMS: Tuple[str, ...] = (
    "payload", "subid", "sub_id", "clickid", "click_id",
    "affid", "aff_id", "campaign", "campaign_id", "tracking",
    "tracker", "ref", "reference", "source", "utm_campaign",
    "pid", "aid", "sid", "cid", "tid", "btag", "tag",
    "sub1", "sub2", "sub3", "subid1", "subid2", "sub_id1", "sub_id2",
    "aff_sub", "aff_sub1", "aff_sub2", "aff_click_id", "affiliate_id",
    "clickref", "click_ref", "visit_id", "var", "var1", "s1", "s2",
    "c1", "zoneid", "trackid", "track_id", "trackingcode", "tracking_id",
    "promo", "promocode", "bonuscode", "refid", "ref_id", "partner",
    "partner_id", "afp", "data1", "anid", "irclickid", "u1", "utm_content",
)

_SAFE_VALUE_CHARS = "-_.~:@!$'()*,;/"
# only terminated references; bare "&region=" must stay a query separator
_ENTITY_RE = re.compile(r"&(?:#\d+|#[xX][0-9a-fA-F]+|[A-Za-z][A-Za-z0-9]*);")


def _decode_entities(url: str) -> str:
    return _ENTITY_RE.sub(lambda m: html.unescape(m.group(0)), url)


class TrackingParam(NamedTuple):
    name: str
    value: str


class _QueryPair(NamedTuple):
    key: str
    value: str
    start: int  # offset of the value inside the full URL string
    end: int


def _query_pairs(url: str):
    """Yield key/value pairs of the query string along with the value's span."""
    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise ValueError(f"not an absolute http(s) url: {url!r}")
    qstart = url.find("?")
    if qstart < 0 or not parts.query:
        return
    hash_at = url.find("#", qstart)
    qend = hash_at if hash_at >= 0 else len(url)
    offset = qstart + 1
    for chunk in url[qstart + 1:qend].split("&"):
        if "=" in chunk:
            raw_key, raw_val = chunk.split("=", 1)
            vstart = offset + len(raw_key) + 1
            yield _QueryPair(unquote_plus(raw_key), unquote_plus(raw_val), vstart, vstart + len(raw_val))
        offset += len(chunk) + 1


def _pick(pairs, old_value: Optional[str], fold_case: bool) -> Optional[_QueryPair]:
    for name in TRACKING_PARAMS:
        wanted = name.lower() if fold_case else name
        for pair in pairs:
            key = pair.key.lower() if fold_case else pair.key
            if key != wanted or not pair.value:
                continue
            if old_value is not None and pair.value != old_value:
                continue
            return pair
    return None


def _resolve_parsed(url: str, old_value: Optional[str]) -> Optional[_QueryPair]:
    pairs = list(_query_pairs(url))
    return _pick(pairs, old_value, fold_case=False) or _pick(pairs, old_value, fold_case=True)


def _fallback_pattern(name: str) -> re.Pattern:
    return re.compile(r"(?:^|(?<=[?&;#\s]))(" + re.escape(name) + r")=([^&\s#\"'|<>]+)", re.I)


def _resolve_regex(url: str, old_value: Optional[str]) -> Optional[re.Match]:
    for name in TRACKING_PARAMS:
        for m in _fallback_pattern(name).finditer(url):
            if old_value is None or unquote_plus(m.group(2)) == old_value:
                return m
    return None


def find_tracking_param(url: str, old_value: Optional[str] = None) -> Optional[TrackingParam]:
    """Return the tracking parameter of ``url`` and its current value.

    With ``old_value`` only a parameter currently holding exactly that value
    qualifies; an unrelated parameter higher in the list is ignored.
    """
    if not url:
        return None
    url = _decode_entities(url)
    try:
        pair = _resolve_parsed(url, old_value)
    except ValueError:
        m = _resolve_regex(url, old_value)
        return TrackingParam(m.group(1), unquote_plus(m.group(2))) if m else None
    return TrackingParam(pair.key, pair.value) if pair else None


def get_tracking_value(url: str) -> Optional[str]:
    found = find_tracking_param(url)
    return found.value if found else None


def replace_tracking_value(url: str, new_value: str, old_value: Optional[str] = None) -> str:
    """Substitute ``new_value`` for the tracking value of ``url``.

    Only the matched value's characters change; every other byte of the
    (entity-decoded) URL is kept. Without a match the input is returned as is.
    """
    if not url:
        return url
    decoded = _decode_entities(url)
    encoded = quote(new_value, safe=_SAFE_VALUE_CHARS)
    try:
        pair = _resolve_parsed(decoded, old_value)
    except ValueError:
        m = _resolve_regex(decoded, old_value)
        if m is None:
            return url
        return decoded[:m.start(2)] + encoded + decoded[m.end(2):]
    if pair is None:
        return url
    return decoded[:pair.start] + encoded + decoded[pair.end:]
