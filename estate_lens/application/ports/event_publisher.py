"""Event Publisher port - interface for publishing pipeline events."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """Event emitted as a flow moves through its stages."""
    stage: str
    message: str
    progress: float | None = None  # 0.0 to 1.0
    source_name: str | None = None


@runtime_checkable
class EventPublisher(Protocol):
    """Port for publishing pipeline events."""

    def publish(self, event: PipelineEvent) -> None:
        """Publish an event."""
        ...

    def subscribe(self, callback: Callable[[PipelineEvent], None]) -> None:
        """Subscribe to events."""
        ...


class SimpleEventPublisher:
    """Synchronous event publisher, safe to share between flows."""

    def __init__(self):
        self._subscribers: list[Callable[[PipelineEvent], None]] = []
        self._lock = threading.Lock()

    def publish(self, event: PipelineEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            callback(event)

    def subscribe(self, callback: Callable[[PipelineEvent], None]) -> None:
        with self._lock:
            self._subscribers.append(callback)
