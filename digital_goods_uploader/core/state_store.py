# core/state_store.py

import json
import logging
from pathlib import Path
from typing import Dict, Any, Set, List, Optional

from digital_goods_uploader.core.product_schema import AdminSession, SubmissionReport

logger = logging.getLogger(__name__)


class StateStore:
    """
    Local JSON file holding the admin session and the outcome of each draft:
    {
        "session": {"token": "...", "expires_at": "2026-10-17T12:00:00+00:00"},
        "drafts": {
            "/path/to/draft_folder": {
                "name": "...",
                "status": "pending" / "success" / "partial" / "failed",
                "product_id": 42,
                "failures": [{"label": "...", "error_message": "...", ...}]
            },
            ...
        }
    }
    A draft's failures are kept until it is submitted again.
    """

    def __init__(self, filepath: Path):
        self.filepath = filepath
        self._state: Dict[str, Any] = {"session": None, "drafts": {}}
        self._load()

    def _load(self) -> None:
        if not self.filepath.exists():
            return
        try:
            with self.filepath.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            # A broken file only costs the history, start over
            logger.warning("Could not load state file %s: %s", self.filepath, e)
            return
        if isinstance(data, dict):
            self._state["session"] = data.get("session")
            self._state["drafts"] = data.get("drafts") or {}

    def _save(self) -> None:
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with self.filepath.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, ensure_ascii=False, indent=2)

    # --- Admin session ---

    def get_session(self) -> Optional[AdminSession]:
        """Stored session, or None if absent or expired."""
        raw = self._state.get("session")
        if not raw:
            return None
        try:
            session = AdminSession.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            return None
        return None if session.expired else session

    def save_session(self, session: AdminSession) -> None:
        self._state["session"] = session.to_dict()
        self._save()

    def clear_session(self) -> None:
        self._state["session"] = None
        self._save()

    # --- Drafts ---

    def get_known_draft_keys(self) -> Set[str]:
        """Every draft that has a record, whatever its status."""
        return set(self._state["drafts"].keys())

    def get_draft_record(self, key: str) -> Dict[str, Any]:
        return self._state["drafts"].get(key, {})

    def mark_draft_status(
        self,
        key: str,
        name: str,
        status: str,
        product_id: Optional[int] = None,
        failures: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        """
        status: "pending" / "success" / "partial" / "failed"
        failures: StepResult dicts for the steps that failed
        """
        self._state["drafts"][key] = {
            "name": name,
            "status": status,
            "product_id": product_id,
            "failures": failures or [],
        }
        self._save()

    def record_report(self, key: str, name: str, report: SubmissionReport) -> None:
        self.mark_draft_status(
            key,
            name,
            "success" if report.succeeded else "partial",
            product_id=report.product_id,
            failures=[s.to_dict() for s in report.failures],
        )

    def list_unfinished_drafts(self, status_filter: Optional[List[str]] = None) -> Dict[str, Any]:
        """Drafts that have not fully succeeded, for retrying."""
        status_filter = status_filter or ["pending", "partial", "failed"]
        return {
            key: rec
            for key, rec in self._state["drafts"].items()
            if rec.get("status") in status_filter
        }
