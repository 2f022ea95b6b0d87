"""Fire-and-forget analytics tracking sink"""

import json
import logging
from typing import Any, Dict, Optional

from paywall_checkout.infrastructure.observability.metrics import (
    tracked_events_counter,
    validation_failure_counter,
)


class EventTracker:
    """
    Records analytics events as structured log lines and Prometheus counters.

    `track` never raises and never blocks the caller: a failing sink is
    logged and the event is dropped.
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def track(
        self,
        event: str,
        category: str,
        action: str,
        label: Optional[str] = None,
        value: Optional[float] = None,
    ) -> None:
        if not self.enabled:
            return

        try:
            self._emit(event, category, action, label, value)
        except Exception as e:
            logging.warning(f"Dropped analytics event {event}/{action}: {e}")

    def _emit(
        self,
        event: str,
        category: str,
        action: str,
        label: Optional[str],
        value: Optional[float],
    ) -> None:
        tracked_events_counter.labels(category=category, action=action).inc()
        if action == "validation_failed":
            validation_failure_counter.labels(stage=label or "payment_form").inc()

        logging.info(
            "Analytics event",
            extra={
                "event": event,
                "event_category": category,
                "event_action": action,
                "event_label": label,
                "event_value": value,
            },
        )

    def track_page_view(self, page_name: str) -> None:
        self.track("page_view", "navigation", "view_page", page_name)

    def track_onboarding_step(self, step: int, data: Optional[Dict[str, Any]] = None) -> None:
        label = json.dumps(data, default=str) if data else None
        self.track("onboarding_step", "onboarding", f"step_{step}", label, step)

    def track_payment_method_selection(self, method: str) -> None:
        self.track("payment_method_selection", "payment", "select_method", method)

    def track_language_change(self, language: str) -> None:
        self.track("language_change", "settings", "change_language", language)
