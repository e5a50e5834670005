"""
web/gate.py -- Reactive session gate for protected views.

A protected view watches two flags owned by the identity provider's client
state:

  ready         -- the provider has finished initializing
  authenticated -- the provider holds a valid session

Both live in StateCell objects. SessionGate subscribes to the two cells and
re-evaluates on every change to either of them:

  not ready                  -> LOADING        (authenticated is not read)
  ready and not authenticated -> REDIRECT       (on_redirect(login_path) fires)
  ready and authenticated    -> AUTHENTICATED

Ordering guarantee: the authenticated flag is never consulted while ready is
False, so a provider that has not finished loading can never trigger a
premature redirect, even if authenticated flips first.

Usage:
    ready, authed = StateCell(False), StateCell(False)
    gate = SessionGate(ready, authed, on_redirect=redirects.append)
    authed.set(True)      # still LOADING
    ready.set(True)       # AUTHENTICATED
    gate.close()
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")

LOGIN_PATH = "/login"


class StateCell(Generic[T]):
    """An observable value. Subscribers are called with the new value on change."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Store value and notify subscribers. Setting the same value is a no-op."""
        if value == self._value:
            return
        self._value = value
        for callback in list(self._subscribers):
            callback(value)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register callback. Returns a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe


class GateState(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    AUTHENTICATED = "authenticated"


class SessionGate:
    """Derives a GateState from the ready/authenticated cells.

    on_redirect is called with login_path each time the gate enters REDIRECT,
    e.g. on first load without a session and again after a later logout.
    It is not called again while the gate stays in REDIRECT.
    """

    def __init__(
        self,
        ready: StateCell[bool],
        authenticated: StateCell[bool],
        on_redirect: Optional[Callable[[str], None]] = None,
        login_path: str = LOGIN_PATH,
    ) -> None:
        self._ready = ready
        self._authenticated = authenticated
        self._on_redirect = on_redirect
        self.login_path = login_path
        self.state = GateState.LOADING
        self._unsubscribers = [
            ready.subscribe(self._on_change),
            authenticated.subscribe(self._on_change),
        ]
        self._evaluate()

    def _on_change(self, _value: bool) -> None:
        self._evaluate()

    def _evaluate(self) -> None:
        if not self._ready.value:
            self.state = GateState.LOADING
            return
        if not self._authenticated.value:
            previous = self.state
            self.state = GateState.REDIRECT
            if previous is not GateState.REDIRECT and self._on_redirect is not None:
                self._on_redirect(self.login_path)
            return
        self.state = GateState.AUTHENTICATED

    def close(self) -> None:
        """Stop observing both cells."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
