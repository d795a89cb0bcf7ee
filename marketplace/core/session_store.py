"""Cached session for one consumer, with change notifications.

The store holds a single subscription to the Identity Service while it is open
and fans events out to its own listeners. Each listener gets a
``Subscription`` handle that must be released; closing the store releases the
upstream subscription unconditionally.
"""

import logging
from typing import Callable, Dict, Optional

from marketplace.core.contracts import (
    IdentityService,
    Session,
    SessionChange,
    SessionEvent,
    Unsubscribable,
)
from marketplace.core.exceptions import AuthError

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionChange], None]


class Subscription:
    """Disposable listener registration. ``unsubscribe`` is idempotent."""

    def __init__(self, store: "SessionStore", listener_id: int):
        self._store = store
        self.id = listener_id
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._store._remove_listener(self.id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class SessionStore:
    def __init__(self, identity: IdentityService):
        self.identity = identity
        self._session: Optional[Session] = None
        self._listeners: Dict[int, SessionListener] = {}
        self._next_id = 0
        self._upstream: Optional[Unsubscribable] = None
        self._signed_out_seen = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> None:
        if self._upstream is None:
            self._upstream = self.identity.on_auth_state_change(self._on_identity_event)

    def close(self) -> None:
        upstream, self._upstream = self._upstream, None
        if upstream is not None:
            upstream.unsubscribe()
        self._listeners.clear()

    async def __aenter__(self) -> "SessionStore":
        self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._upstream is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    # -------------------------------------------------------------------------
    # Session access
    # -------------------------------------------------------------------------

    @property
    def cached(self) -> Optional[Session]:
        return self._session

    async def get_session(self) -> Optional[Session]:
        """Fetch the current session. AuthError propagates."""
        self._session = await self.identity.get_session()
        return self._session

    def on_session_change(self, callback: SessionListener) -> Subscription:
        listener_id = self._next_id
        self._next_id += 1
        self._listeners[listener_id] = callback
        return Subscription(self, listener_id)

    async def sign_out(self) -> None:
        """Terminate the session. Always clears local state."""
        self._signed_out_seen = False
        try:
            await self.identity.sign_out()
        except AuthError as e:
            logger.warning(f"Remote sign out failed, clearing local session anyway: {e.message}")
        # The identity service normally emits SIGNED_OUT itself; listeners
        # must see it even when the remote call failed.
        if not self._signed_out_seen:
            self._session = None
            self._emit(SessionChange(SessionEvent.SIGNED_OUT, None))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _remove_listener(self, listener_id: int) -> None:
        self._listeners.pop(listener_id, None)

    def _on_identity_event(self, event, session: Optional[Session]) -> None:
        parsed = SessionEvent.parse(event)
        if parsed is None:
            logger.debug(f"Ignoring unknown auth event: {event}")
            return
        if parsed == SessionEvent.SIGNED_OUT:
            self._signed_out_seen = True
            self._session = None
        elif session is not None:
            self._session = session
        logger.debug(f"Auth state changed: {parsed.value}")
        self._emit(SessionChange(parsed, self._session))

    def _emit(self, change: SessionChange) -> None:
        # Copy: listeners may unsubscribe while being notified.
        for listener in list(self._listeners.values()):
            listener(change)
