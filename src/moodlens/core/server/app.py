"""moodlens MCP server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from moodlens.core.config.settings import Settings, get_settings
from moodlens.core.processing.orchestrator import ProcessingOrchestrator
from moodlens.domains.mood.connectors import ObservationProvider
from moodlens.domains.mood.connectors.json_export import JsonExportProvider
from moodlens.domains.mood.connectors.providers import SampleObservationProvider
from moodlens.domains.mood.domain_logic.registry import CategoryRegistry, RegistryError
from moodlens.domains.mood.tools.analysis_tools import register_analysis_tools

logger = logging.getLogger(__name__)


def create_app(
    *,
    settings_override: Settings | None = None,
    provider_override: ObservationProvider | None = None,
    registry_override: CategoryRegistry | None = None,
    orchestrator_override: ProcessingOrchestrator | None = None,
) -> FastMCP:
    """Create and configure the moodlens MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the category registry
    3. Picks the observation provider (JSON export, else sample data)
    4. Creates the processing orchestrator
    5. Registers all tools
    """
    settings = settings_override if settings_override is not None else get_settings()

    # --- Server instance ---
    server = FastMCP(
        "moodlens",
        instructions=(
            "Mood-tracking analytics server. Start an analysis over logged mood "
            "observations, poll its per-section status, then read averages, trends, "
            "volatility, correlations, category influences and event windows."
        ),
    )

    # --- Category registry ---
    if registry_override is not None:
        registry = registry_override
    else:
        try:
            registry = settings.load_category_registry()
        except RegistryError as exc:
            logger.error("Failed to load category registry: %s", exc)
            raise
    logger.info("Category registry loaded: %d categories", registry.size())

    # --- Observation provider ---
    if provider_override is not None:
        provider = provider_override
    elif settings.observations_export_path:
        provider = JsonExportProvider(settings.observations_export_path)
        logger.info("Using JSON export provider: %s", settings.observations_export_path)
    else:
        provider = SampleObservationProvider()
        logger.info("No OBSERVATIONS_EXPORT_PATH configured, using sample data provider")

    # --- Orchestrator ---
    if orchestrator_override is not None:
        orchestrator = orchestrator_override
    else:
        orchestrator = ProcessingOrchestrator(
            settings.analysis_settings(registry),
            max_workers=settings.analysis_max_workers,
        )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        status = orchestrator.status()
        return {
            "status": "ok",
            "server": "moodlens",
            "version": "0.1.0",
            "data_source": provider.data_source,
            "data_source_connected": provider.is_connected(),
            "categories_loaded": registry.size(),
            "analysis_tasks": list(orchestrator.task_names),
            "processing": status["processing"],
            "epoch": status["epoch"],
            "result_available": orchestrator.latest is not None,
        }

    register_analysis_tools(server, orchestrator, provider, registry)
    logger.info("Analysis tools registered")

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
