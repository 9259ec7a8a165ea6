import re
import tldextract
from bs4 import BeautifulSoup
from typing import List
from subtrack.config import settings

URL_RE = re.compile(r"https?://[^\s\"'|<>]+", re.I)
_HTML_HINT = re.compile(r"<(?:p|br|div|table|tr|td|th|a|ul|ol|li|h[1-6]|span)\b", re.I)
TRAILING_PUNCT = ".,;:)]}*"

# offline: use the bundled public suffix snapshot, never fetch it
_tld = tldextract.TLDExtract(suffix_list_urls=())

def soupify(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")

def _domain(url: str) -> str:
    ext = _tld(url)
    return ".".join(x for x in [ext.domain, ext.suffix] if x).lower()

def looks_like_html(text: str) -> bool:
    return bool(text and _HTML_HINT.search(text))

def description_text(raw: str) -> str:
    """Plain-text view of a task description.

    ClickUp hands back markdown most of the time but HTML when the task was
    created through some integrations; tables are flattened to ``a | b`` rows
    and anchors keep their href.
    """
    if not raw or not looks_like_html(raw):
        return raw or ""
    soup = soupify(raw)
    for a in soup.find_all("a", href=True):
        label = a.get_text(strip=True)
        href = a["href"].strip()
        a.replace_with(href if not label or label == href else f"{label} {href}")
    for tr in soup.find_all("tr"):
        cells = [c.get_text(" ", strip=True) for c in tr.find_all(["td", "th"])]
        tr.replace_with(soup.new_string("| " + " | ".join(cells) + " |\n"))
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for tag in soup.find_all(["p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6"]):
        if tag.name in ("h1", "h2"):
            tag.insert_before("\n" + "#" * int(tag.name[1]) + " ")
        tag.append("\n")
    text = soup.get_text()
    return re.sub(r"\n{3,}", "\n\n", text)

def find_urls(text: str) -> List[str]:
    return [m.group(0).rstrip(TRAILING_PUNCT) for m in URL_RE.finditer(text or "")]

def is_cloaked(url: str) -> bool:
    cloaked = {d.lower() for d in settings.CLOAKED_LINK_DOMAINS}
    return _domain(url) in cloaked
