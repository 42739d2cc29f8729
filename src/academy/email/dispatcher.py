"""
Fire-and-forget notification fan-out.

``dispatch`` renders synchronously and schedules exactly one delivery
attempt as an asyncio task. Delivery outcome never feeds back into the
state change that triggered it: failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from academy.email.service import EmailService, get_email_service, render_template

logger = structlog.get_logger()


class NotificationDispatcher:
    def __init__(self, service: EmailService | None = None) -> None:
        self._service = service
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def service(self) -> EmailService:
        return self._service or get_email_service()

    def dispatch(self, to: str | None, template: str, context: dict[str, Any]) -> asyncio.Task[bool] | None:
        """Render ``template`` and schedule a single send. Returns the task, or None if nothing was scheduled."""
        if not to:
            return None
        try:
            subject, html_body, text_body = render_template(template, context)
        except (ValueError, TypeError, KeyError):
            logger.exception("email_render_failed", template=template)
            return None

        task = asyncio.create_task(self._deliver(to, template, subject, html_body, text_body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send_now(self, to: str, template: str, context: dict[str, Any]) -> bool:
        """Render and await one delivery attempt (callers that count sends)."""
        try:
            subject, html_body, text_body = render_template(template, context)
        except (ValueError, TypeError, KeyError):
            logger.exception("email_render_failed", template=template)
            return False
        return await self._deliver(to, template, subject, html_body, text_body)

    async def _deliver(self, to: str, template: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            sent = await self.service.send_email(to, subject, html_body, text_body)
        except Exception:  # noqa: BLE001
            logger.warning("email_send_failed", to=to, template=template, exc_info=True)
            return False
        if not sent:
            logger.info("email_not_sent", to=to, template=template)
        return sent

    async def drain(self) -> None:
        """Wait for in-flight sends (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def pending(self) -> int:
        return len(self._tasks)


_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Get or create the dispatcher singleton."""
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher


def reset_dispatcher() -> None:
    global _dispatcher  # noqa: PLW0603
    _dispatcher = None
