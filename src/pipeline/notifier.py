"""Match notifications: terminal output and Slack-style webhooks.

Delivery is fire-and-forget; notify_all logs a failing notifier and moves on.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

import httpx

from src.core.config import NotifyConfig
from src.core.schemas import JobRecord

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """Base class for anything that announces a new match."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in log messages."""

    @abstractmethod
    def notify(self, job: JobRecord, company_name: str, score: float) -> None:
        """Deliver one match. May raise; callers absorb failures."""


class TerminalNotifier(Notifier):
    """Prints one line per match followed by the posting URL."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def name(self) -> str:
        return "terminal"

    def notify(self, job: JobRecord, company_name: str, score: float) -> None:
        stream = self._stream or sys.stdout
        location = job.location or "n/a"
        print(f"NEW MATCH [{score:.0f}] {job.title} @ {company_name} ({location})", file=stream)
        if job.url:
            print(f"  -> {job.url}", file=stream)


class WebhookNotifier(Notifier):
    """POSTs a Slack-compatible {"text": ...} payload."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "webhook"

    def notify(self, job: JobRecord, company_name: str, score: float) -> None:
        payload = {"text": format_webhook_text(job, company_name, score)}
        if self._client is not None:
            response = self._client.post(self._url, json=payload, timeout=self._timeout)
        else:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._url, json=payload)
        response.raise_for_status()


def format_webhook_text(job: JobRecord, company_name: str, score: float) -> str:
    return (
        f"*New Job Match [{score:.0f}]*\n"
        f"*{job.title}* @ {company_name}\n"
        f"Location: {job.location or 'n/a'}\n"
        f"<{job.url}|Apply>"
    )


def build_notifiers(config: NotifyConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.terminal:
        notifiers.append(TerminalNotifier())
    if config.webhook_url:
        notifiers.append(WebhookNotifier(config.webhook_url, timeout=config.webhook_timeout_s))
    return notifiers


def notify_all(notifiers: list[Notifier], job: JobRecord, company_name: str, score: float) -> int:
    """Send a match to every notifier. Returns how many succeeded."""
    delivered = 0
    for notifier in notifiers:
        try:
            notifier.notify(job, company_name, score)
        except Exception:
            logger.warning(
                "%s notification failed for job %s", notifier.name, job.id, exc_info=True,
            )
            continue
        delivered += 1
    return delivered
