"""moodlens server entry point — ``python -m moodlens.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from moodlens.core.config.settings import get_settings
from moodlens.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host in {"localhost"}:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the moodlens MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.moodlens_log_level.upper(), logging.INFO)
    )

    logger = logging.getLogger(__name__)
    if not settings.moodlens_allow_insecure_bind and not _is_loopback_host(settings.moodlens_host):
        raise RuntimeError(
            "Refusing to bind moodlens to a non-loopback host without an auth layer. "
            "Set MOODLENS_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info("Starting moodlens server on %s:%d", settings.moodlens_host, settings.moodlens_port)

    mcp = create_app(settings_override=settings)
    mcp.run(
        transport="streamable-http",
        host=settings.moodlens_host,
        port=settings.moodlens_port,
    )


if __name__ == "__main__":
    run()
