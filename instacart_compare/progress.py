from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, TextIO

logger = logging.getLogger(__name__)

RUN_STARTED = "run-started"
SHOP_COMPLETED = "shop-completed"
RUN_COMPLETED = "run-completed"


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    payload: dict[str, Any] = field(default_factory=dict)
    at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "at": self.at, "payload": self.payload}


Listener = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Fans lifecycle events out to listeners. A failing listener never breaks a run."""

    def __init__(self, listeners: list[Listener] | None = None):
        self.listeners: list[Listener] = list(listeners or [])

    def subscribe(self, listener: Listener) -> None:
        self.listeners.append(listener)

    def emit(self, kind: str, **payload: Any) -> None:
        event = ProgressEvent(kind=kind, payload=payload)
        for listener in self.listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Progress listener failed on %s", kind)

    def run_started(self, shop_names: list[str]) -> None:
        self.emit(RUN_STARTED, shops=list(shop_names))

    def shop_completed(self, shop_name: str, item_count: int) -> None:
        self.emit(SHOP_COMPLETED, shop=shop_name, itemCount=item_count)

    def run_completed(self, view: dict[str, Any]) -> None:
        self.emit(RUN_COMPLETED, view=view)


def logging_listener(event: ProgressEvent) -> None:
    if event.kind == RUN_STARTED:
        logger.info("Comparing %d shops: %s", len(event.payload["shops"]), ", ".join(event.payload["shops"]))
    elif event.kind == SHOP_COMPLETED:
        logger.info("Found total of %d items for %s", event.payload["itemCount"], event.payload["shop"])
    elif event.kind == RUN_COMPLETED:
        logger.info("Comparison complete")


class JsonLinesListener:
    """Writes each event as one JSON line, e.g. to a file another process tails."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def __call__(self, event: ProgressEvent) -> None:
        self.stream.write(json.dumps(event.to_dict()) + "\n")
        self.stream.flush()
