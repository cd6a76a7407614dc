"""Auth module for the STA reviewer application.

This module contains the session providers that supply the current
user identity from the external identity provider.
"""

from .session import SessionProvider, SessionListener, InMemorySessionProvider, StreamlitSessionProvider

__all__ = ["SessionProvider", "SessionListener", "InMemorySessionProvider", "StreamlitSessionProvider"]
