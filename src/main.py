"""Cyclewise entry point: logging setup and service wiring.

The engine is a library.  Hosts (a web app, a worker, a CLI) call
``configure_logging()`` once at startup and build a service per data store::

    from src.main import configure_logging, create_stats_service

    configure_logging()
    service = create_stats_service(log_store, settings_store)
"""

from __future__ import annotations

import logging
import sys

from src.config import Settings, get_settings
from src.cycles.config_loader import get_cycle_config
from src.cycles.service import BaselineSource, CycleStatsService, LogSource

logger = logging.getLogger("cyclewise")


# ---------- Logging ----------

def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- Service factory ----------

def create_stats_service(log_source: LogSource, baseline_source: BaselineSource) -> CycleStatsService:
    settings = get_settings()
    config = get_cycle_config()
    logger.info(
        "Starting %s v%s [%s] with cycle config v%s",
        settings.app_name,
        settings.app_version,
        settings.environment,
        config.version,
    )
    return CycleStatsService(log_source, baseline_source, config)
