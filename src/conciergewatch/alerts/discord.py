from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Protocol

import requests


logger = logging.getLogger(__name__)


class MessageSink(Protocol):
    def send(self, content: str) -> bool: ...


@dataclass
class DiscordWebhook:
    webhook_url: str
    timeout_s: float = 15
    session: Optional[requests.Session] = None

    def send(self, content: str) -> bool:
        """POST one message. Failures are logged, never raised."""
        http = self.session or requests
        try:
            resp = http.post(self.webhook_url, json={"content": content}, timeout=self.timeout_s)
        except requests.RequestException as e:
            logger.error("Discord post failed: %s", e)
            return False

        if not 200 <= resp.status_code < 300:
            logger.error("Discord post failed: %s %s", resp.status_code, (resp.text or "")[:500])
            return False
        return True


def send_many(
    sink: MessageSink,
    messages: Iterable[str],
    *,
    delay_ms: int,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[int, int]:
    """Send messages in order with a fixed pause between them.

    Returns (delivered, failed).
    """
    delivered = failed = 0
    for i, content in enumerate(messages):
        if i and delay_ms > 0:
            sleep(delay_ms / 1000)
        if sink.send(content):
            delivered += 1
            logger.info("Posted: %s", content.splitlines()[0] if content else "")
        else:
            failed += 1
    return delivered, failed
