from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

BIRTHDAY = "BIRTHDAY"
WEDDING_ANNIVERSARY = "WEDDING_ANNIVERSARY"
HOME_ANNIVERSARY = "HOME_ANNIVERSARY"
TASK = "TASK"

MILESTONE_CATEGORIES = (BIRTHDAY, WEDDING_ANNIVERSARY, HOME_ANNIVERSARY)
CATEGORIES = (*MILESTONE_CATEGORIES, TASK)


def _get(row: Dict[str, Any], *keys: str) -> Any:
    # Rows arrive camelCase from JSON exports and snake_case from the backend.
    for key in keys:
        if row.get(key) is not None:
            return row[key]
    return None


def _opt_str(row: Dict[str, Any], *keys: str) -> Optional[str]:
    value = _get(row, *keys)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class Lead:
    id: str
    first_name: str
    last_name: str = ""
    dob: Optional[str] = None
    wedding_anniversary: Optional[str] = None
    home_anniversary: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    is_deleted: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Lead":
        return cls(
            id=str(row["id"]),
            first_name=str(_get(row, "firstName", "first_name") or ""),
            last_name=str(_get(row, "lastName", "last_name") or ""),
            dob=_opt_str(row, "dob"),
            wedding_anniversary=_opt_str(row, "weddingAnniversary", "wedding_anniversary"),
            home_anniversary=_opt_str(row, "homeAnniversary", "home_anniversary"),
            assigned_agent_id=_opt_str(row, "assignedAgentId", "assigned_agent_id"),
            is_deleted=bool(_get(row, "isDeleted", "is_deleted")),
        )


@dataclass
class Task:
    id: str
    title: str
    due_date: str
    description: str = ""
    end_date: Optional[str] = None
    priority: str = "MEDIUM"
    lead_id: Optional[str] = None
    is_completed: bool = False
    assigned_user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Task":
        return cls(
            id=str(row["id"]),
            title=str(_get(row, "title") or ""),
            due_date=str(_get(row, "dueDate", "due_date") or ""),
            description=str(_get(row, "description") or ""),
            end_date=_opt_str(row, "endDate", "end_date"),
            priority=str(_get(row, "priority") or "MEDIUM").upper(),
            lead_id=_opt_str(row, "leadId", "lead_id"),
            is_completed=bool(_get(row, "isCompleted", "is_completed")),
            assigned_user_id=_opt_str(row, "assignedUserId", "assigned_user_id"),
        )


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    category: str               # one of CATEGORIES
    title: str
    start: datetime             # timezone-aware
    end: Optional[datetime]     # timezone-aware; None means "unknown"
    source: str                 # "lead" / "task"
    source_id: str
    description: str = ""
    priority: str = "MEDIUM"
    lead_id: Optional[str] = None
    is_completed: bool = False

    @property
    def is_milestone(self) -> bool:
        return self.category in MILESTONE_CATEGORIES
