"""MCP tools for running and reading mood analyses.

The tools are thin: they translate JSON arguments into orchestrator calls
and serialize ``ProcessedResult`` back to JSON. Analysis runs in the
orchestrator's worker threads, so ``start_analysis`` returns immediately.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from moodlens.core.processing.orchestrator import ProcessingOrchestrator, RunHandle
    from moodlens.domains.mood.connectors import ObservationProvider
    from moodlens.domains.mood.domain_logic.registry import CategoryRegistry

from moodlens.core.processing.orchestrator import AnalysisError
from moodlens.domains.mood.connectors.json_export import ObservationParseError, parse_records
from moodlens.domains.mood.domain_logic.models import CategoryGroup
from moodlens.domains.mood.domain_logic.snapshot import SnapshotError

logger = logging.getLogger(__name__)

# Handles kept for analysis_result lookups by epoch
_MAX_TRACKED_RUNS = 16

RESULT_SECTIONS = (
    "daily_series",
    "health_series",
    "sliding_averages",
    "expanding_average",
    "average_mood",
    "volatility",
    "trends",
    "correlations",
    "health_correlations",
    "influences",
    "event_windows",
    "event_summaries",
    "hashtags",
    "tallies",
)


def _validate_sections(sections: list[str] | None) -> list[str]:
    if not sections:
        return list(RESULT_SECTIONS)
    unknown = [s for s in sections if s not in RESULT_SECTIONS]
    if unknown:
        raise ValueError(f"Unknown result sections: {', '.join(unknown)}")
    return sections


def register_analysis_tools(
    mcp: FastMCP,
    orchestrator: ProcessingOrchestrator,
    provider: ObservationProvider,
    registry: CategoryRegistry,
) -> None:
    """Register analysis lifecycle tools on the MCP server."""
    runs: OrderedDict[int, RunHandle] = OrderedDict()

    def _track(handle: RunHandle) -> None:
        runs[handle.epoch] = handle
        while len(runs) > _MAX_TRACKED_RUNS:
            runs.popitem(last=False)

    def _lookup(epoch: int | None) -> RunHandle | None:
        if epoch is None:
            return next(reversed(runs.values()), None)
        return runs.get(epoch)

    @mcp.tool
    async def start_analysis(
        ctx: Context,
        observations: list[dict[str, Any]] | None = None,
        health_observations: list[dict[str, Any]] | None = None,
    ) -> str:
        """Start a new analysis run, superseding any run still in progress.

        Without arguments, analyzes the configured data source. Otherwise
        analyzes the given records (same shape as the JSON export format);
        malformed records are skipped.

        Args:
            observations: Optional mood/note/event records.
            health_observations: Optional daily health records.
        """
        if observations is None and health_observations is None:
            try:
                obs = provider.load_observations()
                health = provider.load_health_observations()
            except ObservationParseError as exc:
                logger.error("Could not load observations from %s: %s", provider.data_source, exc)
                return json.dumps({"status": "rejected", "error": str(exc)})
            source = provider.data_source
            skipped = 0
        else:
            parsed = parse_records(observations or [], health_observations or [])
            obs, health, skipped = (
                parsed.observations,
                parsed.health_observations,
                parsed.skipped,
            )
            source = "inline"

        try:
            handle = orchestrator.start(obs, health, registry)
        except SnapshotError as exc:
            logger.error("Rejected analysis input: %s", exc)
            return json.dumps({"status": "rejected", "error": str(exc)})

        _track(handle)
        return json.dumps({
            "status": handle.state.value,
            "epoch": handle.epoch,
            "data_source": source,
            "observations": len(obs),
            "health_observations": len(health),
            "skipped_records": skipped,
        })

    @mcp.tool
    async def analysis_status(ctx: Context) -> str:
        """Show per-section processing flags for the current or last run."""
        return json.dumps(orchestrator.status())

    @mcp.tool
    async def analysis_result(
        ctx: Context,
        epoch: int | None = None,
        sections: list[str] | None = None,
        wait_seconds: float = 0.0,
    ) -> str:
        """Return a finished analysis result.

        Args:
            epoch: Run to read (default: the most recent run started here).
            sections: Subset of result sections to include (default: all).
            wait_seconds: How long to wait for a pending run (default: 0).
        """
        wanted = _validate_sections(sections)
        handle = _lookup(epoch)
        if handle is None:
            return json.dumps({"status": "not_found", "epoch": epoch})

        start_time = time.monotonic()
        try:
            if wait_seconds > 0:
                result = await asyncio.to_thread(orchestrator.wait, handle, wait_seconds)
            else:
                result = orchestrator.result(handle)
        except AnalysisError as exc:
            return json.dumps({"status": "failed", "epoch": handle.epoch, "error": str(exc)})

        if result is None:
            return json.dumps({"status": handle.state.value, "epoch": handle.epoch})

        payload = result.to_dict()
        elapsed_ms = (time.monotonic() - start_time) * 1000
        logger.debug("Serialized result epoch=%d in %.1f ms", handle.epoch, elapsed_ms)
        return json.dumps({
            "status": handle.state.value,
            "epoch": handle.epoch,
            "result": {name: payload[name] for name in wanted},
        })

    @mcp.tool
    async def cancel_analysis(ctx: Context) -> str:
        """Cancel the run in progress, if any. Its partial output is discarded."""
        handle = _lookup(None)
        cancelled = handle is not None and orchestrator.cancel(handle)
        return json.dumps({
            "status": "cancelled" if cancelled else "idle",
            "epoch": handle.epoch if handle is not None else None,
        })

    @mcp.tool
    def list_categories() -> dict:
        """List the recognized symptom, activity and social categories."""
        return {
            group.value: [
                {"label": d.label, "visible": d.visible}
                for d in registry.definitions(group)
            ]
            for group in (CategoryGroup.SYMPTOM, CategoryGroup.ACTIVITY, CategoryGroup.SOCIAL)
        }
