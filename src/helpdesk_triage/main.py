"""
Helpdesk Triage - SLA Monitor
=============================

Process entry point that keeps SLA deadlines under watch.

STARTUP:
1. Setup structured logging
2. Connect to the database and create missing tables
3. Load rule files and build the engine
4. Start the SLA scan scheduler

SHUTDOWN (SIGINT / SIGTERM):
1. Stop the scheduler
2. Stop config watchers and close the notifier
3. Dispose of database connections
"""

import asyncio
import signal
from datetime import datetime, timezone
from typing import Optional

from helpdesk_triage.config import Settings, get_settings
from helpdesk_triage.infrastructure.database import Database
from helpdesk_triage.engine import build_engine
from helpdesk_triage.shared.infrastructure.logging import get_logger, setup_logging
from helpdesk_triage.sla.infrastructure import SlackAlertNotifier, SlaScheduler

logger = get_logger(__name__)


async def run_monitor(settings: Optional[Settings] = None) -> None:
    """Run SLA scans on an interval until a shutdown signal arrives."""
    settings = settings or get_settings()

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA monitor", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "interval_seconds": settings.sla_scan_interval_seconds,
    })

    database = Database(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    await database.create_tables()

    notifier = None
    if settings.slack_webhook_url:
        notifier = SlackAlertNotifier(
            webhook_url=settings.slack_webhook_url,
            channel=settings.slack_channel,
            timeout_seconds=settings.slack_timeout_seconds,
            ticket_url_template=settings.ticket_url_template,
        )
    else:
        logger.warning("Slack webhook not configured - alerts will be recorded but not delivered")

    engine = build_engine(settings, database, notifier)

    async def sla_scan_job():
        """Background SLA scan job."""
        await engine.run_sla_scan(datetime.now(timezone.utc))

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    scheduler = SlaScheduler(interval_seconds=settings.sla_scan_interval_seconds)
    scheduler.start(sla_scan_job)

    try:
        await stop.wait()
    finally:
        # === SHUTDOWN ===
        logger.info("Shutting down SLA monitor")
        scheduler.stop()
        engine.close()
        if notifier:
            await notifier.close()
        await database.dispose()
        logger.info("SLA monitor shutdown complete")


def main() -> None:
    """Console entry point."""
    try:
        asyncio.run(run_monitor())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
