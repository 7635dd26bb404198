"""
Socket.IO authentication module.
Validates Supabase access tokens for socket connections and tracks the
auth state of each connection afterwards.
"""
import inspect
from typing import List, Optional, Tuple

from kr_portal.backend.models import AuthEvent, AuthSession
from kr_portal.backend.protocols import AuthListener
from kr_portal.core.logging import auth_logger
from kr_portal.core.security import decode_token_sync
from kr_portal.realtime.subscription import Subscription


def extract_token(auth: dict = None, environ: dict = None) -> Optional[str]:
    """
    Extracts token from:
    1. auth.token (preferred - sent in Socket.IO auth object)
    2. Authorization header (fallback)
    """
    token = None
    if auth and isinstance(auth, dict):
        token = auth.get("token") or auth.get("access_token")

    if not token and environ:
        header = environ.get("HTTP_AUTHORIZATION", "")
        if header.startswith("Bearer "):
            token = header[7:]
    return token or None


def session_from_token(token: Optional[str]) -> Optional[AuthSession]:
    if not token:
        return None
    payload = decode_token_sync(token)
    if payload is None or not payload.get("sub"):
        return None
    return AuthSession(
        user_id=str(payload["sub"]),
        access_token=token,
        email=payload.get("email"),
        expires_at=payload.get("exp"),
    )


def authenticate_socket(auth: dict = None, environ: dict = None) -> Tuple[bool, Optional[AuthSession]]:
    """
    Returns:
        Tuple of (is_authenticated, session)
    """
    token = extract_token(auth, environ)
    if not token:
        auth_logger.warning("Socket connection rejected: No token provided")
        return False, None

    session = session_from_token(token)
    if session is None:
        auth_logger.warning("Socket connection rejected: Invalid access token")
        return False, None

    auth_logger.info("Socket authenticated", user_id=session.user_id)
    return True, session


class SocketAuthGateway:
    """
    Auth state of one socket connection.

    The browser owns the Supabase session; it forwards sign-in, sign-out and
    token refresh events over the socket and they are replayed here to the
    listeners (the session's RoleProvider).
    """

    def __init__(self, session: Optional[AuthSession] = None):
        self._session = session
        self._listeners: List[AuthListener] = []

    async def get_session(self) -> Optional[AuthSession]:
        return self._session

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        self._listeners.append(listener)

        def _remove():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription("auth-state", _remove)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def dispatch(self, event, access_token: Optional[str] = None) -> bool:
        """
        Apply an auth transition reported by the client. Returns False when the
        event is unknown or carries a token that does not verify.
        """
        try:
            event = AuthEvent(event)
        except ValueError:
            auth_logger.warning("Unknown auth event from socket", auth_event=str(event))
            return False

        if event is AuthEvent.SIGNED_OUT:
            self._session = None
        else:
            session = session_from_token(access_token)
            if session is None:
                auth_logger.warning("Rejected auth event with invalid token", auth_event=event.value)
                return False
            self._session = session

        for listener in list(self._listeners):
            result = listener(event, self._session)
            if inspect.isawaitable(result):
                await result
        return True
