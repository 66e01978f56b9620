from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.responses import StreamingResponse

from oncall_copilot.analysis import CopilotAnalyst
from oncall_copilot.board import SnapshotBoard
from oncall_copilot.catalog import MOCK_ALERTS, MOCK_RUNBOOKS, MOCK_TOOL_RESULTS, get_alert
from oncall_copilot.config import CopilotSettings
from oncall_copilot.errors import CopilotError, DecodeError, UnknownAlertError
from oncall_copilot.investigation import Investigator
from oncall_copilot.logging_config import configure_logging, get_logger
from oncall_copilot.models import (
    Alert,
    CopilotState,
    FindingRequest,
    InvestigationStatus,
    Runbook,
)
from oncall_copilot.providers.factory import build_provider
from oncall_copilot.retry import is_rate_limited
from oncall_copilot.tools import StaticToolResults, ToolExecutor

logger = get_logger(__name__)

app = FastAPI(title="oncall-copilot", version="0.1.0")


@app.on_event("startup")
async def startup() -> None:
    configure_logging()
    settings = CopilotSettings.from_env()
    provider = build_provider(settings)
    executor = ToolExecutor(StaticToolResults(MOCK_TOOL_RESULTS))
    app.state.settings = settings
    app.state.investigator = Investigator(provider, executor, settings)
    app.state.analyst = CopilotAnalyst(provider, settings)
    app.state.board = SnapshotBoard()
    logger.info(
        "startup_complete",
        extra={"provider": provider.__class__.__name__, "max_iterations": settings.max_iterations},
    )


def get_investigator() -> Investigator:
    return app.state.investigator


def get_analyst() -> CopilotAnalyst:
    return app.state.analyst


def get_board() -> SnapshotBoard:
    return app.state.board


def _lookup_alert(alert_id: str) -> Alert:
    try:
        return get_alert(alert_id)
    except UnknownAlertError as exc:
        raise HTTPException(status_code=404, detail="alert_not_found") from exc


def _oracle_failure(exc: Exception) -> HTTPException:
    if isinstance(exc, DecodeError):
        return HTTPException(status_code=502, detail=str(exc))
    if is_rate_limited(exc):
        return HTTPException(status_code=503, detail="oracle_rate_limited")
    return HTTPException(status_code=502, detail="oracle_call_failed")


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/alerts", response_model=list[Alert])
async def list_alerts() -> list[Alert]:
    return MOCK_ALERTS


@app.get("/runbooks", response_model=list[Runbook])
async def list_runbooks() -> list[Runbook]:
    return MOCK_RUNBOOKS


async def _run_investigation(
    investigator: Investigator, board: SnapshotBoard, alert: Alert, run_id: str
) -> None:
    try:
        await investigator.run_investigation(
            alert,
            MOCK_RUNBOOKS,
            lambda state: board.publish(alert.id, run_id, state),
            run_id=run_id,
        )
    except Exception as exc:
        logger.exception(
            "investigation_failed",
            extra={"investigation_id": run_id, "alert_id": alert.id, "error": str(exc)},
        )
        board.fail(alert.id, run_id, str(exc))


@app.post("/alerts/{alert_id}/investigations", response_model=InvestigationStatus, status_code=202)
async def start_investigation(
    alert_id: str,
    background_tasks: BackgroundTasks,
    investigator: Investigator = Depends(get_investigator),
    board: SnapshotBoard = Depends(get_board),
) -> InvestigationStatus:
    alert = _lookup_alert(alert_id)
    run_id = board.start(alert.id)
    background_tasks.add_task(_run_investigation, investigator, board, alert, run_id)
    return board.get(alert.id)


@app.get("/alerts/{alert_id}/investigations/latest", response_model=InvestigationStatus)
async def latest_investigation(
    alert_id: str, board: SnapshotBoard = Depends(get_board)
) -> InvestigationStatus:
    status = board.get(alert_id)
    if status is None:
        raise HTTPException(status_code=404, detail="not_found")
    return status


@app.post("/alerts/{alert_id}/investigations/stream")
async def stream_investigation(
    alert_id: str, investigator: Investigator = Depends(get_investigator)
) -> StreamingResponse:
    alert = _lookup_alert(alert_id)
    return StreamingResponse(_snapshot_lines(investigator, alert), media_type="application/x-ndjson")


async def _snapshot_lines(investigator: Investigator, alert: Alert) -> AsyncIterator[str]:
    queue: asyncio.Queue[CopilotState | None] = asyncio.Queue()

    async def produce() -> None:
        try:
            await investigator.run_investigation(alert, MOCK_RUNBOOKS, queue.put)
        finally:
            await queue.put(None)

    task = asyncio.create_task(produce())
    try:
        while True:
            state = await queue.get()
            if state is None:
                break
            yield state.model_dump_json() + "\n"
    finally:
        # Client went away mid-stream.
        if not task.done():
            task.cancel()

    try:
        await task
    except Exception as exc:
        logger.exception("investigation_stream_failed", extra={"alert_id": alert.id, "error": str(exc)})
        yield json.dumps({"error": str(exc)}) + "\n"


@app.post("/alerts/{alert_id}/analysis", response_model=CopilotState)
async def analyze(alert_id: str, analyst: CopilotAnalyst = Depends(get_analyst)) -> CopilotState:
    alert = _lookup_alert(alert_id)
    try:
        return await analyst.analyze_alert(alert, MOCK_RUNBOOKS)
    except (CopilotError, httpx.HTTPError) as exc:
        logger.exception("analysis_failed", extra={"alert_id": alert_id, "error": str(exc)})
        raise _oracle_failure(exc) from exc


@app.post("/alerts/{alert_id}/findings", response_model=CopilotState)
async def submit_finding(
    alert_id: str,
    payload: FindingRequest,
    analyst: CopilotAnalyst = Depends(get_analyst),
) -> CopilotState:
    alert = _lookup_alert(alert_id)
    try:
        return await analyst.update_investigation(alert, payload.history, payload.finding, MOCK_RUNBOOKS)
    except (CopilotError, httpx.HTTPError) as exc:
        logger.exception("finding_update_failed", extra={"alert_id": alert_id, "error": str(exc)})
        raise _oracle_failure(exc) from exc
