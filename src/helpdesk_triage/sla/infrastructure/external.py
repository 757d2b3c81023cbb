"""
SLA External Service Integrations
==================================

External services for SLA monitoring:
- Slack webhook notifications for alert events
- APScheduler for the periodic SLA scan
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk_triage.config import AlertType
from helpdesk_triage.core import NotificationException
from helpdesk_triage.shared.infrastructure.logging import get_logger
from helpdesk_triage.sla.application import IAlertNotifier
from helpdesk_triage.sla.domain import AlertEvent

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        """Get current circuit state."""
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if self._clock() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self._clock()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


ALERT_HEADERS = {
    AlertType.RESPONSE_NEAR: ":warning: Respuesta SLA próxima a vencer",
    AlertType.RESOLUTION_NEAR: ":warning: Resolución SLA próxima a vencer",
    AlertType.RESPONSE_BREACHED: ":rotating_light: SLA de respuesta vencido",
    AlertType.RESOLUTION_BREACHED: ":rotating_light: SLA de resolución vencido",
}


class SlackAlertNotifier(IAlertNotifier):
    """
    Slack webhook notifier with circuit breaker and retry logic.

    Handles sending alert events to Slack with:
    - Circuit breaker to prevent cascade failures
    - Exponential backoff retry
    - Timeout handling
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        channel: str,
        timeout_seconds: float = 5.0,
        ticket_url_template: str = "{ticket_id}",
        max_retries: int = 3,
        backoff_base: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self._webhook_url = webhook_url
        self._channel = channel
        self._timeout = timeout_seconds
        self._ticket_url_template = ticket_url_template
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._http_client = http_client
        self._circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    def build_message(self, event: AlertEvent) -> Dict[str, Any]:
        """Build a Slack Block Kit message for an alert event."""
        ticket_label = event.ticket_code or f"#{event.ticket_id}"
        ticket_url = self._ticket_url_template.format(ticket_id=event.ticket_id)

        if event.minutes_remaining >= 0:
            remaining = f"{event.minutes_remaining} min restantes"
        else:
            remaining = f"vencido hace {-event.minutes_remaining} min"

        technician = (
            str(event.assigned_technician_id)
            if event.assigned_technician_id is not None
            else "sin asignar"
        )

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": ALERT_HEADERS[event.alert_type],
                    "emoji": True
                }
            },
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*Ticket:*\n<{ticket_url}|{ticket_label}>"},
                    {"type": "mrkdwn", "text": f"*Título:*\n{event.ticket_title or '-'}"},
                    {"type": "mrkdwn", "text": f"*Vence:*\n{event.deadline.isoformat()}"},
                    {"type": "mrkdwn", "text": f"*Técnico:*\n{technician}"},
                ]
            },
            {
                "type": "context",
                "elements": [
                    {"type": "mrkdwn", "text": f"{event.alert_type.value} | {remaining}"}
                ]
            }
        ]

        return {
            "channel": self._channel,
            "text": f"{ALERT_HEADERS[event.alert_type]}: {ticket_label}",
            "blocks": blocks
        }

    async def send(self, event: AlertEvent) -> bool:
        """
        Send an alert to the Slack webhook.

        Returns:
            True if sent successfully, False otherwise
        """
        if not self._webhook_url:
            logger.debug("Slack webhook URL not configured, skipping notification")
            return False

        if not self._circuit_breaker.allow_request():
            logger.warning(
                "Circuit breaker open, skipping Slack notification",
                extra={"ticket_id": event.ticket_id}
            )
            return False

        message = self.build_message(event)

        for attempt in range(self._max_retries):
            try:
                response = await self._get_client().post(self._webhook_url, json=message)
                if response.status_code != 200:
                    raise NotificationException(
                        f"Slack webhook returned {response.status_code}",
                        {"status_code": response.status_code}
                    )

                self._circuit_breaker.record_success()
                logger.info(
                    "Slack notification sent",
                    extra={
                        "ticket_id": event.ticket_id,
                        "alert_type": event.alert_type.value
                    }
                )
                return True
            except (httpx.HTTPError, NotificationException) as e:
                logger.error(
                    "Slack notification failed",
                    extra={
                        "error": str(e),
                        "attempt": attempt + 1,
                        "ticket_id": event.ticket_id
                    }
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(self._backoff_base * 2 ** attempt)

        self._circuit_breaker.record_failure()
        return False

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class SlaScheduler:
    """
    Wrapper for APScheduler running the SLA scan on a fixed interval.

    The job is registered with ``max_instances=1``; overlapping ticks are
    additionally skipped by the monitor's own guard.
    """

    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None

    def start(self, job_func: Callable[[], Awaitable[Any]]) -> None:
        """Start the scheduler with the given coroutine function."""
        if self.is_running:
            logger.warning("SLA scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id="sla_scan",
            name="SLA Scan Job",
            misfire_grace_time=60,
            coalesce=True,
            max_instances=1,
            replace_existing=True
        )
        self._scheduler.start()

        logger.info(
            "SLA scheduler started",
            extra={"interval_seconds": self.interval_seconds}
        )

    def stop(self) -> None:
        """Stop the scheduler without waiting for a running scan."""
        if not self.is_running:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
