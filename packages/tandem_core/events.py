"""Lifecycle events for Tandem operations.

Observers subscribe to named events (``pre_checkout``, ``post_discard``...)
and are called synchronously in registration order. Observers are
extension points only: an observer that raises is logged and skipped.

Execution Context:
    Library module - imported by orchestrator

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Observer = Callable[..., None]

# Wildcard subscription receives every event with its name as ``event``.
ALL_EVENTS = "*"


class EventBus:
    """Registry of observer callbacks keyed by event name."""

    def __init__(self) -> None:
        self._observers: dict[str, list[Observer]] = defaultdict(list)

    def subscribe(
            self,
            event: str,
            callback: Observer,
    ) -> None:
        self._observers[event].append(callback)

    def unsubscribe(
            self,
            event: str,
            callback: Observer,
    ) -> None:
        if callback in self._observers.get(event, []):
            self._observers[event].remove(callback)

    def observers(self, event: str) -> list[Observer]:
        return list(self._observers.get(event, []))

    def fire(
            self,
            event: str,
            **payload: Any,
    ) -> None:
        """Call every observer of ``event`` with ``payload``.

        Args:
            event: Event name.
            **payload: Keyword arguments passed to each observer.
        """
        logger.debug(f"Firing {event} {payload}")
        for callback in self.observers(event):
            self._call(event, callback, payload)
        for callback in self.observers(ALL_EVENTS):
            self._call(event, callback, {"event": event, **payload})

    @staticmethod
    def _call(
            event: str,
            callback: Observer,
            payload: dict[str, Any],
    ) -> None:
        try:
            callback(**payload)
        except Exception as observer_error:
            logger.warning(f"Observer {callback!r} failed on {event}: {observer_error}")
