"""Entry point for cowcheck — `cowcheck` console script."""

from __future__ import annotations

import argparse
import logging

import uvicorn
from rich.console import Console
from rich.panel import Panel

from cowcheck import __version__
from cowcheck.api.server import create_app
from cowcheck.config import Settings, settings

console = Console()


def main() -> None:
    """Start the health-check daemon."""
    parser = argparse.ArgumentParser(description="Node-local health-check daemon")
    parser.add_argument("--host", default=settings.api_host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Bind port")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (trace..panic)")
    args = parser.parse_args()

    cfg = settings
    if args.log_level:
        cfg = Settings(log_level=args.log_level)

    logging.basicConfig(
        level=getattr(logging, cfg.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logging.getLogger(__name__).warning("Starting cowcheck %s...", __version__)

    storage = (
        f"on (data ≥ {cfg.data_space_threshold}B, metadata ≥ {cfg.metadata_space_threshold}B)"
        if cfg.enable_storage_check
        else "off"
    )
    console.print(
        Panel.fit(
            f"[bold]cowcheck {__version__}[/bold]\n"
            f"Bind:     {args.host}:{args.port}\n"
            f"Interval: {cfg.poll_interval}s\n"
            f"Storage:  {storage}\n"
            f"Log:      {cfg.log_level}",
            title="cowcheck",
            border_style="green",
        )
    )

    uvicorn.run(
        create_app(cfg),
        host=args.host,
        port=args.port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
