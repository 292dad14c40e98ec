#!/usr/bin/env python3

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOG_STRUCTURES: Dict[str, tuple[str, ...]] = {
    "examLogs": (
        "fullscreen",
        "keyboard",
        "multitab",
        "fullscreenWarnings",
        "devtools",
        "focus",
        "questionTiming",
    ),
    "gazeLogs": ("cameraAccess", "gaze"),
}

CATEGORY_GROUPS = {"exam": "examLogs", "gaze": "gazeLogs"}

DEFAULT_EXPIRY_S = 30.0
DEFAULT_REPORT_NAME = "unified_exam_report.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class ExamEventLog:
    """Exam and gaze event store with expiry, JSON persistence and report export.

    Entries older than the expiry window are dropped on every write and on load;
    entries without a readable timestamp are dropped too. An expiry of None keeps
    everything.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        expiry_s: Optional[float] = DEFAULT_EXPIRY_S,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = path
        self.expiry = timedelta(seconds=expiry_s) if expiry_s else None
        self.clock = clock
        self.stats_provider: Optional[Callable[[], Dict[str, Any]]] = None
        self._groups: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        # Capture and frame-loop threads both write here.
        self._lock = threading.RLock()
        stored = self._read_store()
        for group in DEFAULT_LOG_STRUCTURES:
            self._load(group, stored.get(group))

    def _empty_group(self, group: str) -> Dict[str, List[Dict[str, Any]]]:
        return {sub: [] for sub in DEFAULT_LOG_STRUCTURES.get(group, ())}

    def _prune(self, entries: Dict[str, Any]) -> Dict[str, List[Dict[str, Any]]]:
        now = self.clock()
        cleaned: Dict[str, List[Dict[str, Any]]] = {}
        for key, items in entries.items():
            items = items if isinstance(items, list) else []
            kept = []
            for entry in items:
                if not isinstance(entry, dict):
                    continue
                ts = _parse_ts(entry.get("timestamp"))
                if ts is None:
                    continue
                if self.expiry is not None and now - ts >= self.expiry:
                    continue
                kept.append(entry)
            cleaned[key] = kept
        return cleaned

    def _read_store(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("[Log] ignoring unreadable log store %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _load(self, group: str, stored: Any) -> None:
        merged: Dict[str, Any] = self._empty_group(group)
        if isinstance(stored, dict):
            merged.update(stored)
        self._groups[group] = self._prune(merged)

    def _persist(self) -> None:
        if not self.path:
            return
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._groups, f, separators=(",", ":"))
        os.replace(tmp_path, self.path)

    def emit(
        self,
        event_type: str,
        category: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        group = CATEGORY_GROUPS.get(category, category)
        entry: Dict[str, Any] = {"timestamp": self.clock().isoformat(), "message": message}
        for key, value in (data or {}).items():
            # The store's own ISO timestamp drives expiry; keep the caller's under another key.
            if key == "timestamp":
                entry["eventTimestamp"] = value
            elif key != "message":
                entry[key] = value

        with self._lock:
            logs = self._groups.setdefault(group, self._empty_group(group))
            logs.setdefault(event_type, []).append(entry)
            self._groups[group] = self._prune(logs)
            self._persist()
        logger.info("[Log] [%s] %s", event_type, message)
        return entry

    def entries(self, group: str, event_type: str) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._prune(self._groups.get(group, {})).get(event_type, []))

    def unified_report(self) -> Dict[str, Any]:
        with self._lock:
            report: Dict[str, Any] = {
                "examEvents": self._prune(self._groups.get("examLogs", {})),
                "gazeEvents": self._prune(self._groups.get("gazeLogs", {})),
            }
        if self.stats_provider is not None:
            report["focusStats"] = self.stats_provider()
        return report

    def export_report(self, path: str = DEFAULT_REPORT_NAME) -> str:
        report = self.unified_report()
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        with self._lock, open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
        logger.info("[Log] exported unified exam report to %s", path)
        return path
