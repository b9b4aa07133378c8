from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import json
import logging

import requests

from .models import Lead, Task

logger = logging.getLogger(__name__)


@dataclass
class Records:
    leads: List[Lead] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)


def _parse_rows(rows: List[Dict[str, Any]], kind: str) -> list:
    parse = Lead.from_row if kind == "lead" else Task.from_row
    parsed = []
    for row in rows:
        try:
            parsed.append(parse(row))
        except KeyError as e:
            logger.warning("Skipping %s row without %s", kind, e)
    return parsed


def load_records(path: str) -> Records:
    """Read leads and tasks from a JSON export: {"leads": [...], "tasks": [...]}."""
    data: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    return Records(
        leads=_parse_rows(list(data.get("leads") or []), "lead"),
        tasks=_parse_rows(list(data.get("tasks") or []), "task"),
    )


class BackendClient:
    """Read-only client for the hosted backend's REST tables."""

    def __init__(self, base_url: str, api_key: str, timeout: int = 10, user_agent: str = "brokercal/1.0") -> None:
        if not base_url:
            raise ValueError("Backend URL is not configured")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "User-Agent": user_agent,
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        })

    def _select(self, table: str, brokerage_id: str = "") -> List[Dict[str, Any]]:
        params = {"select": "*"}
        if brokerage_id:
            params["brokerage_id"] = f"eq.{brokerage_id}"
        resp = self._session.get(f"{self.base_url}/rest/v1/{table}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected payload for table {table!r}")
        return payload

    def fetch_records(self, leads_table: str = "leads", tasks_table: str = "tasks", brokerage_id: str = "") -> Records:
        return Records(
            leads=_parse_rows(self._select(leads_table, brokerage_id), "lead"),
            tasks=_parse_rows(self._select(tasks_table, brokerage_id), "task"),
        )
