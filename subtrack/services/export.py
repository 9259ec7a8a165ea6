import re
import pandas as pd
from datetime import datetime, timezone
from typing import Iterable, Mapping, Union
from subtrack.models.db_models import SubId

Row = Union[SubId, Mapping]


def _get(row: Row, key: str):
    return row.get(key) if isinstance(row, Mapping) else getattr(row, key)


def _iso(ms) -> str:
    return datetime.fromtimestamp(int(ms) / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def subids_frame(rows: Iterable[Row], detailed: bool = False) -> pd.DataFrame:
    """Sub-IDs as a table: value and timestamp, plus URL and task when detailed."""
    records = []
    for row in rows:
        rec = {"Sub-ID": _get(row, "value")}
        if detailed:
            rec["URL"] = _get(row, "url") or ""
            rec["ClickUp Task"] = _get(row, "clickup_task_id") or ""
        rec["Timestamp"] = _iso(_get(row, "timestamp"))
        records.append(rec)
    columns = ["Sub-ID", "URL", "ClickUp Task", "Timestamp"] if detailed else ["Sub-ID", "Timestamp"]
    return pd.DataFrame.from_records(records, columns=columns)


def subids_csv(rows: Iterable[Row], detailed: bool = False) -> str:
    return subids_frame(rows, detailed=detailed).to_csv(index=False, lineterminator="\n")


def export_filename(website_name: str, now_ms: int) -> str:
    slug = re.sub(r"\s+", "-", website_name.strip().lower())
    return f"{slug}-subids-{now_ms}.csv"
