import logging
import httpx
from typing import Any, Dict, Iterable, List, Optional
from subtrack.config import settings
from subtrack.exceptions import ClickUpError, ClickUpNotConfiguredError

log = logging.getLogger(__name__)

LIVE_URL_FIELDS = ("*live url", "live url", "liveurl", "url")
TARGET_GEO_FIELDS = ("*target geo", "target geo", "geo")
WEBSITE_FIELDS = ("*website", "website", "site")


class ClickUpClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.CLICKUP_API_KEY
        self.client = httpx.AsyncClient(
            base_url=(base_url or settings.CLICKUP_BASE_URL).rstrip("/"),
            headers={
                "Authorization": self.api_key or "",
                "Content-Type": "application/json",
                "User-Agent": settings.USER_AGENT,
            },
            timeout=settings.TIMEOUT_SECS,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def close(self):
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.configured:
            raise ClickUpNotConfiguredError()
        last_exc: Optional[Exception] = None
        for _ in range(settings.RETRIES + 1):
            try:
                r = await self.client.request(method, path, **kwargs)
            except httpx.RequestError as e:
                last_exc = e
                log.warning("ClickUp %s %s failed: %s", method, path, e)
                continue
            if r.status_code >= 400:
                log.warning("ClickUp %s %s -> %s %s", method, path, r.status_code, r.text[:200])
                reason = "Task not found" if r.status_code == 404 else r.reason_phrase
                raise ClickUpError(f"ClickUp API error: {reason}", status_code=r.status_code)
            return r
        raise ClickUpError(f"ClickUp unreachable: {last_exc}")

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        r = await self._request("GET", f"/task/{task_id.strip()}",
                                params={"include_markdown_description": "true"})
        return r.json()

    async def get_comments(self, task_id: str) -> List[Dict[str, Any]]:
        r = await self._request("GET", f"/task/{task_id.strip()}/comment")
        return r.json().get("comments", [])

    async def post_comment(self, task_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        r = await self._request("POST", f"/task/{task_id.strip()}/comment", json=body)
        return r.json()


async def get_clickup_client():
    """FastAPI dependency yielding a client bound to the configured token."""
    client = ClickUpClient()
    try:
        yield client
    finally:
        await client.close()


def resolve_field_value(field: Dict[str, Any]) -> Optional[str]:
    """Human-readable value of a task custom field.

    Dropdowns store an option reference (orderindex or option id) rather
    than the label; it is looked up in the field's options. Unresolvable
    references come back as None.
    """
    value = field.get("value")
    if value is None or value == "":
        return None
    ftype = field.get("type")
    options = (field.get("type_config") or {}).get("options") or []
    if ftype == "drop_down":
        return _option_label(options, value)
    if ftype == "labels":
        refs = value if isinstance(value, list) else [value]
        labels = [_option_label(options, ref) for ref in refs]
        labels = [x for x in labels if x]
        return ", ".join(labels) or None
    if isinstance(value, dict):
        return value.get("name") or value.get("label")
    return str(value).strip() or None


def _option_label(options: List[Dict[str, Any]], ref: Any) -> Optional[str]:
    if isinstance(ref, str) and not ref.isdigit():
        for opt in options:
            if opt.get("id") == ref:
                return opt.get("name") or opt.get("label")
        return None
    try:
        idx = int(ref)
    except (TypeError, ValueError):
        return None
    for opt in options:
        if opt.get("orderindex") is not None and int(opt["orderindex"]) == idx:
            return opt.get("name") or opt.get("label")
    if 0 <= idx < len(options):
        return options[idx].get("name") or options[idx].get("label")
    return None


def find_custom_field(task: Dict[str, Any], names: Iterable[str]) -> Optional[str]:
    """First custom field (by name, case-insensitive) holding a usable value."""
    wanted = [n.lower() for n in names]
    fields = task.get("custom_fields") or []
    for name in wanted:
        for f in fields:
            if (f.get("name") or "").strip().lower() == name:
                value = resolve_field_value(f)
                if value:
                    return value
    return None


def live_url(task: Dict[str, Any]) -> Optional[str]:
    return find_custom_field(task, LIVE_URL_FIELDS)


def task_description(task: Dict[str, Any]) -> str:
    return task.get("markdown_description") or task.get("description") or task.get("text_content") or ""
