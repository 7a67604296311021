"""Fire-and-forget notifications for new bets and match results."""
import logging
from typing import Any, Dict, Optional

import requests

from .config import BROADCAST_TIMEOUT_SECONDS, DISCORD_WEBHOOK_URL

logger = logging.getLogger(__name__)


class Broadcaster:
    """Logs events. Subclasses deliver them somewhere else as well."""

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"[{event}] {payload}")


class WebhookBroadcaster(Broadcaster):
    """Posts events to a Discord webhook. Delivery failures never reach the caller."""

    def __init__(self, url: str = DISCORD_WEBHOOK_URL, timeout: float = BROADCAST_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def _format(self, event: str, payload: Dict[str, Any]) -> str:
        if event == "new-bet":
            return (
                f"**{payload.get('username', 'Someone')}** bet {payload['amount']:.2f} on "
                f"{payload['description']} @ {payload['odds']:.2f} "
                f"({payload['team1']} vs {payload['team2']})"
            )
        if event == "match-result":
            return (
                f"**{payload['team1']} {payload['score']} {payload['team2']}** - "
                f"{payload['winners']} winning bets, {payload['total_payout']:.2f} paid"
            )
        return f"{event}: {payload}"

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        super().publish(event, payload)
        if not self.url:
            return
        try:
            response = requests.post(
                self.url,
                json={"content": self._format(event, payload)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Broadcast of {event} failed: {e}")


def default_broadcaster(url: Optional[str] = None) -> Broadcaster:
    url = DISCORD_WEBHOOK_URL if url is None else url
    return WebhookBroadcaster(url) if url else Broadcaster()
