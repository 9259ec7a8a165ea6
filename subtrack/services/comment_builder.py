import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from subtrack.config import settings
from subtrack.services.html_utils import TRAILING_PUNCT, URL_RE, is_cloaked
from subtrack.services.top_picks import find_top_picks_section, iter_section_lines
from subtrack.services.tracking_params import replace_tracking_value

_CODE_BLOCK = {"code-block": {"code-block": "plain"}}


@dataclass
class ClickUpComment:
    """Rich-text comment as ClickUp expects it: ordered text segments."""
    segments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(seg["text"] for seg in self.segments)

    def payload(self, notify_all: bool = False) -> Dict[str, Any]:
        return {"comment": self.segments, "notify_all": notify_all}


def fallback_comment(sub_id: str) -> ClickUpComment:
    return ClickUpComment([{"text": f"Sub-ID: {sub_id}", "attributes": {}}])


def _strip_task_id(text: str, task_id: str) -> str:
    if not task_id:
        return text
    return re.sub(r"(?<!\w)#?" + re.escape(task_id) + r"(?!\w)", "", text)


def rewrite_line(line: str, task_id: str, sub_id: str) -> str:
    """Point every URL on the line at ``sub_id`` and drop cloaked links.

    Leftover bare task ids (table artifacts) outside URLs are removed too.
    Returns "" when nothing but table punctuation is left.
    """
    pieces = []
    pos = 0
    for m in URL_RE.finditer(line):
        url = m.group(0).rstrip(TRAILING_PUNCT)
        pieces.append(_strip_task_id(line[pos:m.start()], task_id))
        if not is_cloaked(url):
            pieces.append(replace_tracking_value(url, sub_id, old_value=task_id))
        pos = m.start() + len(url)
    pieces.append(_strip_task_id(line[pos:], task_id))
    text = re.sub(r"[ \t]{2,}", " ", "".join(pieces)).strip()
    text = re.sub(r"\|(?:\s*\|)+", "|", text)
    if not re.search(r"\w", text.replace("|", "")):
        return ""
    return text


def build_comment(description: Optional[str], task_id: str, sub_id: str) -> ClickUpComment:
    section = find_top_picks_section(description)
    if section is None:
        return fallback_comment(sub_id)
    lines = [rewrite_line(ln.text, task_id, sub_id) for ln in iter_section_lines(section)]
    lines = [ln for ln in lines if ln]
    if not lines:
        return fallback_comment(sub_id)
    segments: List[Dict[str, Any]] = [
        {"text": f"Sub-ID: {sub_id}", "attributes": {"bold": True}},
        {"text": "\n", "attributes": {}},
        {"text": settings.TOP_PICKS_MARKER, "attributes": {"bold": True}},
        {"text": "\n", "attributes": {}},
    ]
    for line in lines:
        segments.append({"text": line, "attributes": {}})
        segments.append({"text": "\n", "attributes": _CODE_BLOCK})
    return ClickUpComment(segments)
