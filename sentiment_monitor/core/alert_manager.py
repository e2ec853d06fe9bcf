"""
Alert management component for surfacing sentiment fetch problems.
Handles console, webhook, and alert throttling to prevent spam.
"""
import logging
import time
from typing import Callable, Optional

import requests

from sentiment_monitor.core.colors import Colors
from sentiment_monitor.core.models import AlertEvent


class AlertManager:
    """Notifies a human when the sentiment feed is rate limited"""

    def __init__(self, webhook: Optional[str] = None, cooldown: int = 300,
                 clock: Callable[[], float] = time.time):
        self.webhook = webhook
        self.last_alert_time = {}
        self.alert_cooldown = cooldown  # seconds between duplicate alerts
        self.clock = clock

    def notify(self, event: AlertEvent) -> bool:
        """
        Send an alert for a classified failure.

        Returns:
            True if the alert went out, False if it was throttled
        """
        throttle_key = event.kind.value
        now = self.clock()
        last_time = self.last_alert_time.get(throttle_key)
        if last_time is not None and now - last_time < self.alert_cooldown:
            logging.debug(f"[ALERT] Throttled duplicate {throttle_key} alert")
            return False
        self.last_alert_time[throttle_key] = now

        title = event.title or event.kind.value.replace('_', ' ').title()
        logging.warning(f"[ALERT] {title}: {event.message}")

        if self.webhook:
            try:
                payload = {
                    'text': f"*{title}*: {event.message}",
                    'username': 'FX Sentiment Monitor'
                }
                requests.post(self.webhook, json=payload, timeout=5)
            except requests.exceptions.RequestException as e:
                logging.debug(f"[ALERT] Failed to send webhook alert: {e}")

        print(f"{Colors.WARNING}[ALERT] {title}: {event.message}{Colors.RESET}")
        return True
