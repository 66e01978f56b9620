from __future__ import annotations

import uuid

from oncall_copilot.models import CopilotState, InvestigationStatus, now_utc


class SnapshotBoard:
    """Latest snapshot per alert, held in process memory.

    Starting a run for an alert replaces whatever the previous run left behind;
    writes from a superseded run are ignored.
    """

    def __init__(self) -> None:
        self._entries: dict[str, InvestigationStatus] = {}

    def start(self, alert_id: str) -> str:
        run_id = str(uuid.uuid4())
        self._entries[alert_id] = InvestigationStatus(alert_id=alert_id, run_id=run_id, status="running")
        return run_id

    def publish(self, alert_id: str, run_id: str, state: CopilotState) -> bool:
        if not self._is_current(alert_id, run_id):
            return False
        self._entries[alert_id] = InvestigationStatus(
            alert_id=alert_id,
            run_id=run_id,
            status="complete" if state.is_investigation_complete else "running",
            state=state,
            updated_at=now_utc(),
        )
        return True

    def fail(self, alert_id: str, run_id: str, error: str) -> bool:
        if not self._is_current(alert_id, run_id):
            return False
        previous = self._entries[alert_id]
        self._entries[alert_id] = previous.model_copy(
            update={"status": "failed", "error": error, "updated_at": now_utc()}
        )
        return True

    def get(self, alert_id: str) -> InvestigationStatus | None:
        return self._entries.get(alert_id)

    def _is_current(self, alert_id: str, run_id: str) -> bool:
        entry = self._entries.get(alert_id)
        return entry is not None and entry.run_id == run_id
