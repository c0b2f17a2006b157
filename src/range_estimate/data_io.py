"""
Data I/O utilities.

Provides thin helpers to:
- Export / import session files (JSON) with defaulting of optional fields
- Load / save session files locally or in Azure Blob Storage
- Load / save work-item lists as CSV (spreadsheet-style usage)
- Accept AI-assist suggestions as ordinary work items and staffing rows

This is the only layer that type-checks untrusted input; the
engine modules assume correctly typed data.
"""

from __future__ import annotations

import csv
import json
import logging
import math
from dataclasses import asdict, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from azure.storage.blob import BlobServiceClient

from .config import Config, get_config
from .errors import SessionFormatError
from .schema import (
    DEFAULT_CONSTANTS,
    EstimationConstants,
    Group,
    SessionState,
    StaffingRow,
    StaffingState,
    WorkItem,
)
from .staffing import resize_row_cells

logger = logging.getLogger(__name__)

SESSION_VERSION = 1

WORK_ITEM_FIELDS = [
    "id",
    "title",
    "notes",
    "best_case_hours",
    "worst_case_hours",
    "enabled",
    "multiplier",
]


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are not numbers here.
    # json.loads also accepts NaN and Infinity, which are not hours.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


# --- Session export ----------------------------------------------------------------


def _work_item_to_dict(item: WorkItem) -> Dict[str, Any]:
    data = {
        "id": item.id,
        "title": item.title,
        "notes": item.notes,
        "best_case_hours": item.best_case_hours,
        "worst_case_hours": item.worst_case_hours,
        "enabled": item.enabled,
        "multiplier": item.multiplier,
    }
    if item.group_id is not None:
        data["groupId"] = item.group_id
    return data


def session_to_dict(state: SessionState) -> Dict[str, Any]:
    return {
        "workItems": [_work_item_to_dict(i) for i in state.work_items],
        "constants": asdict(state.constants),
        "nextId": state.next_id,
        "staffing": {
            "rows": [asdict(r) for r in state.staffing.rows],
            "week_count": state.staffing.week_count,
            "nextRowId": state.staffing.next_row_id,
        },
        "groups": [asdict(g) for g in state.groups],
        "nextGroupId": state.next_group_id,
    }


def export_session(state: SessionState, exported_at: Optional[datetime] = None) -> str:
    """Serialize a session as {version, exportedAt, state} JSON."""
    stamp = exported_at or datetime.now(timezone.utc)
    payload = {
        "version": SESSION_VERSION,
        "exportedAt": stamp.isoformat(),
        "state": session_to_dict(state),
    }
    return json.dumps(payload, indent=2)


# --- Session import ----------------------------------------------------------------


def _parse_work_item(raw: Any) -> WorkItem:
    if not isinstance(raw, dict):
        raise SessionFormatError("Invalid work item")
    if not _is_number(raw.get("id")):
        raise SessionFormatError("Work item missing id")
    if not _is_number(raw.get("best_case_hours")):
        raise SessionFormatError("Work item missing best_case_hours")
    if not _is_number(raw.get("worst_case_hours")):
        raise SessionFormatError("Work item missing worst_case_hours")

    title = raw.get("title")
    notes = raw.get("notes")
    enabled = raw.get("enabled")
    multiplier = raw.get("multiplier")
    group_id = raw.get("groupId")

    return WorkItem(
        id=int(raw["id"]),
        best_case_hours=raw["best_case_hours"],
        worst_case_hours=raw["worst_case_hours"],
        title=title if isinstance(title, str) else "",
        notes=notes if isinstance(notes, str) else "",
        enabled=enabled if isinstance(enabled, bool) else True,
        multiplier=multiplier if _is_number(multiplier) and multiplier >= 1 else 1,
        group_id=int(group_id) if _is_number(group_id) else None,
    )


def _parse_constants(raw: Mapping[str, Any]) -> EstimationConstants:
    """Known numeric fields override the defaults; anything else is ignored."""
    overrides = {}
    for name in asdict(DEFAULT_CONSTANTS):
        value = raw.get(name)
        if _is_number(value):
            overrides[name] = float(value)
    return DEFAULT_CONSTANTS.replace(**overrides)


def _cell_text(raw: Any) -> str:
    if raw is None:
        return ""
    return raw if isinstance(raw, str) else str(raw)


def _parse_staffing_row(raw: Any) -> StaffingRow:
    if not isinstance(raw, dict) or not _is_number(raw.get("id")):
        raise SessionFormatError("Staffing row missing id")

    cells = raw.get("cells")
    if not isinstance(cells, list):
        cells = []
    rate = raw.get("hourly_rate")
    discipline = raw.get("discipline")
    enabled = raw.get("enabled")
    multiplier = raw.get("multiplier")

    return StaffingRow(
        id=int(raw["id"]),
        discipline=discipline if isinstance(discipline, str) else "",
        hourly_rate=float(rate) if _is_number(rate) else 0.0,
        cells=[_cell_text(c) for c in cells],
        enabled=enabled if isinstance(enabled, bool) else True,
        multiplier=int(multiplier) if _is_number(multiplier) and multiplier >= 1 else 1,
    )


def _parse_staffing(raw: Any) -> StaffingState:
    if not isinstance(raw, dict):
        return StaffingState()
    rows = raw.get("rows")
    week_count = raw.get("week_count")
    next_row_id = raw.get("nextRowId")
    return StaffingState(
        rows=[_parse_staffing_row(r) for r in rows] if isinstance(rows, list) else [],
        week_count=int(week_count) if _is_number(week_count) else 0,
        next_row_id=int(next_row_id) if _is_number(next_row_id) else 1,
    )


def _parse_groups(raw: Any) -> List[Group]:
    if not isinstance(raw, list):
        return []
    groups = []
    for g in raw:
        if not isinstance(g, dict) or not _is_number(g.get("id")):
            raise SessionFormatError("Group missing id")
        name = g.get("name")
        groups.append(
            Group(
                id=int(g["id"]),
                name=name if isinstance(name, str) else "",
                collapsed=bool(g.get("collapsed", False)),
            )
        )
    return groups


def import_session(text: str) -> SessionState:
    """
    Parse a session file produced by export_session (or by the web app).

    Required: version, state, state.workItems, item id / best_case_hours /
    worst_case_hours, state.constants (the object; fields may default),
    state.nextId. Everything else is backfilled with defaults.

    Raises SessionFormatError naming the first missing piece.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise SessionFormatError("Invalid JSON") from e

    if not isinstance(parsed, dict):
        raise SessionFormatError("Expected a JSON object")
    if not _is_number(parsed.get("version")):
        raise SessionFormatError("Missing or invalid version field")

    state = parsed.get("state")
    if not isinstance(state, dict):
        raise SessionFormatError("Missing state field")

    raw_items = state.get("workItems")
    if not isinstance(raw_items, list):
        raise SessionFormatError("Missing workItems array")
    work_items = [_parse_work_item(i) for i in raw_items]

    constants = state.get("constants")
    if not isinstance(constants, dict):
        raise SessionFormatError("Missing constants object")

    next_id = state.get("nextId")
    if not _is_number(next_id):
        raise SessionFormatError("Missing nextId")

    next_group_id = state.get("nextGroupId")

    return SessionState(
        work_items=work_items,
        constants=_parse_constants(constants),
        next_id=int(next_id),
        staffing=_parse_staffing(state.get("staffing")),
        groups=_parse_groups(state.get("groups")),
        next_group_id=int(next_group_id) if _is_number(next_group_id) else 1,
    )


# --- Local files -------------------------------------------------------------------


def load_session_file(path: str) -> SessionState:
    text = Path(path).read_text(encoding="utf-8")
    state = import_session(text)
    logger.info("Loaded session %s (%d work items)", path, len(state.work_items))
    return state


def save_session_file(state: SessionState, path: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(export_session(state), encoding="utf-8")
    logger.info("Saved session to %s", path)


def load_work_items_from_csv(path: str) -> List[WorkItem]:
    """
    Load work items from a CSV file.

    Expected columns (case-sensitive):
    - Required: id, best_case_hours, worst_case_hours
    - Optional: title, notes, enabled, multiplier

    Extra columns are ignored. Rows with a non-numeric required column
    raise SessionFormatError.
    """
    items: List[WorkItem] = []
    with open(path, mode="r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for line_no, row in enumerate(reader, start=2):
            if not row or not any(row.values()):
                continue
            try:
                item_id = int(row["id"])
                best = float(row["best_case_hours"])
                worst = float(row["worst_case_hours"])
            except (KeyError, TypeError, ValueError) as e:
                raise SessionFormatError(
                    f"Invalid work item on line {line_no} of {path}"
                ) from e

            enabled = (row.get("enabled") or "true").strip().lower()
            multiplier = row.get("multiplier") or "1"
            try:
                count = max(1, int(multiplier))
            except ValueError:
                count = 1

            items.append(
                WorkItem(
                    id=item_id,
                    best_case_hours=best,
                    worst_case_hours=worst,
                    title=row.get("title") or "",
                    notes=row.get("notes") or "",
                    enabled=enabled in {"1", "true", "yes", "y", "on"},
                    multiplier=count,
                )
            )
    return items


def save_work_items_to_csv(items: Iterable[WorkItem], path: str) -> None:
    with open(path, mode="w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=WORK_ITEM_FIELDS)
        writer.writeheader()
        for item in items:
            row = asdict(item)
            writer.writerow({key: row.get(key) for key in WORK_ITEM_FIELDS})


# --- Azure Blob helpers ------------------------------------------------------------


def _get_blob_client(
    blob_name: str,
    container_name: Optional[str],
    config: Optional[Config],
):
    cfg = config or get_config()
    if not cfg.azure_blob_connection_string:
        raise ValueError(
            "Azure blob connection string is not configured. "
            "Set RE_AZURE_BLOB_CONNECTION_STRING or pass Config explicitly."
        )
    container = container_name or cfg.azure_blob_container_name
    if not container:
        raise ValueError(
            "Azure blob container name is not configured. "
            "Set RE_AZURE_BLOB_CONTAINER_NAME or pass container_name."
        )
    service_client = BlobServiceClient.from_connection_string(
        cfg.azure_blob_connection_string
    )
    return service_client.get_blob_client(container=container, blob=blob_name)


def load_session_from_azure_blob(
    blob_name: str,
    *,
    container_name: Optional[str] = None,
    config: Optional[Config] = None,
) -> SessionState:
    """
    Load a session JSON stored in Azure Blob Storage.

    - blob_name: name of the blob (e.g., 'sessions/q3-plan.json')
    - container_name: overrides Config.azure_blob_container_name if provided
    """
    blob_client = _get_blob_client(blob_name, container_name, config)
    text = blob_client.download_blob().readall().decode("utf-8")
    state = import_session(text)
    logger.info("Loaded session blob %s (%d work items)", blob_name, len(state.work_items))
    return state


def save_session_to_azure_blob(
    state: SessionState,
    blob_name: str,
    *,
    container_name: Optional[str] = None,
    config: Optional[Config] = None,
) -> None:
    """Save a session as JSON into an Azure Blob. Overwrites the target blob."""
    blob_client = _get_blob_client(blob_name, container_name, config)
    blob_client.upload_blob(export_session(state).encode("utf-8"), overwrite=True)
    logger.info("Saved session blob %s", blob_name)


# --- AI-assist import --------------------------------------------------------------


def _is_complete_ai_item(raw: Any) -> bool:
    return (
        isinstance(raw, dict)
        and bool(raw.get("title"))
        and bool(raw.get("groupName"))
        and _is_number(raw.get("best_case_hours"))
        and _is_number(raw.get("worst_case_hours"))
    )


def _is_complete_ai_role(raw: Any) -> bool:
    return (
        isinstance(raw, dict)
        and bool(raw.get("discipline"))
        and _is_number(raw.get("hourly_rate"))
        and _is_number(raw.get("count"))
    )


def _group_for_name(
    groups: List[Group], name: str, next_group_id: int
) -> Tuple[int, int]:
    """Return (group id, next free group id), creating the group if needed."""
    for group in groups:
        if group.name == name:
            return group.id, next_group_id
    groups.append(Group(id=next_group_id, name=name))
    return next_group_id, next_group_id + 1


def import_ai_work_items(
    state: SessionState,
    ai_items: Sequence[Mapping[str, Any]],
) -> SessionState:
    """
    Append AI-suggested items as ordinary work items.

    Each complete suggestion {title, notes, best_case_hours,
    worst_case_hours, groupName} gets the next free id and lands in the
    group of that name (created if missing). Incomplete suggestions are
    skipped. The input state is not modified.
    """
    groups = [replace(g) for g in state.groups]
    work_items = list(state.work_items)
    next_id = state.next_id
    next_group_id = state.next_group_id

    for raw in ai_items:
        if not _is_complete_ai_item(raw):
            logger.warning("Skipping incomplete AI work item: %r", raw)
            continue
        group_id, next_group_id = _group_for_name(
            groups, str(raw["groupName"]), next_group_id
        )
        notes = raw.get("notes")
        work_items.append(
            WorkItem(
                id=next_id,
                best_case_hours=raw["best_case_hours"],
                worst_case_hours=raw["worst_case_hours"],
                title=str(raw["title"]),
                notes=notes if isinstance(notes, str) else "",
                group_id=group_id,
            )
        )
        next_id += 1

    return replace(
        state,
        work_items=work_items,
        next_id=next_id,
        groups=groups,
        next_group_id=next_group_id,
    )


def import_ai_staffing_roles(
    state: SessionState,
    roles: Sequence[Mapping[str, Any]],
    week_count: Optional[int] = None,
) -> SessionState:
    """
    Append AI-suggested roles {discipline, hourly_rate, count} as staffing rows.

    count becomes the row multiplier. Cells start empty; existing rows are
    resized to week_count (Config.default_week_count when not given).
    """
    weeks = week_count if week_count is not None else get_config().default_week_count
    rows = resize_row_cells(state.staffing.rows, weeks)
    next_row_id = state.staffing.next_row_id

    for raw in roles:
        if not _is_complete_ai_role(raw):
            logger.warning("Skipping incomplete AI staffing role: %r", raw)
            continue
        rows.append(
            StaffingRow(
                id=next_row_id,
                discipline=str(raw["discipline"]),
                hourly_rate=float(raw["hourly_rate"]),
                cells=[""] * weeks,
                multiplier=max(1, int(raw["count"])),
            )
        )
        next_row_id += 1

    return replace(
        state,
        staffing=StaffingState(rows=rows, week_count=weeks, next_row_id=next_row_id),
    )
