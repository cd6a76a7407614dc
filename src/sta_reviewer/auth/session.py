"""Session providers for the STA reviewer application.

Authentication itself is handled by an external identity provider. The
review pipeline only needs the current user identity, or None when
signed out, and a way to hear about session changes.
"""

from typing import Any, Callable, List, Optional, Protocol

import streamlit as st
from loguru import logger

__all__ = ["SessionProvider", "SessionListener", "InMemorySessionProvider", "StreamlitSessionProvider"]

SessionListener = Callable[[Optional[str]], None]


class SessionProvider(Protocol):
    """Protocol for identity/session sources."""

    def current_user(self) -> Optional[str]:
        """Return the signed-in user identity, or None."""
        ...

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a session-change listener and return an unsubscribe callable."""
        ...


class InMemorySessionProvider:
    """Session provider holding the identity in memory.

    Used by tests and by deployments where the host sets the identity
    directly. Listeners are notified on every change.
    """

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._user_id: Optional[str] = user_id
        self._listeners: List[SessionListener] = []

    def current_user(self) -> Optional[str]:
        return self._user_id

    def set_user(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return
        self._user_id = user_id
        for listener in list(self._listeners):
            listener(user_id)

    def sign_out(self) -> None:
        self.set_user(None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


class StreamlitSessionProvider(InMemorySessionProvider):
    """Session provider backed by Streamlit's built-in OIDC login.

    Streamlit reruns the script on every interaction, so ``refresh`` is
    called per run and listeners fire when the identity changed.
    """

    def __init__(self, user_info: Any = None) -> None:
        super().__init__(None)
        self._user_info: Any = user_info
        self.refresh()

    def _read_identity(self) -> Optional[str]:
        try:
            user_info = self._user_info if self._user_info is not None else st.user
            if not user_info.get("is_logged_in", False):
                return None
            return user_info.get("sub") or user_info.get("email")
        except Exception as e:
            logger.warning("Could not read session identity: {}", e)
            return None

    def refresh(self) -> Optional[str]:
        self.set_user(self._read_identity())
        return self.current_user()
