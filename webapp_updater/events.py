"""Explicit publish/subscribe plumbing for WebApp Updater.

Listeners connect to a :class:`Signal` and get a :class:`Subscription`
back; cancelling it is the only way to stop receiving emissions.  There
is no global notification bus.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by :meth:`Signal.connect`."""

    def __init__(self, signal: "Signal", callback: Callable[..., Any]):
        self._signal = signal
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop delivering emissions to the callback.  Safe to call twice."""
        if self._active:
            self._active = False
            self._signal._remove(self)


class Signal:
    """A named, thread-safe list of callbacks."""

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def connect(self, callback: Callable[..., Any]) -> Subscription:
        """Register *callback* and return its subscription."""
        sub = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def emit(self, *args: Any) -> None:
        """Call every connected callback; a failing listener does not stop the rest."""
        with self._lock:
            subs = list(self._subscriptions)
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.callback(*args)
            except Exception:
                logger.exception("Error in %s listener", self.name)


class HostLifecycle:
    """Foreground/background notifications published by the host app."""

    def __init__(self) -> None:
        self.will_enter_foreground = Signal("will_enter_foreground")
        self.did_enter_background = Signal("did_enter_background")

    def enter_foreground(self) -> None:
        logger.debug("Host entering foreground.")
        self.will_enter_foreground.emit()

    def enter_background(self) -> None:
        logger.debug("Host entered background.")
        self.did_enter_background.emit()
