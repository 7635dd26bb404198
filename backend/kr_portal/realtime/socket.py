"""
Socket.IO server for dashboard sessions.

Each connection is one mounted dashboard: connecting opens a DashboardSession
(role state + change-feed subscriptions), disconnecting disposes it.

Client -> server events:
- auth:changed        {event, access_token}  sign-in / sign-out / token refresh
- role:set            {role}                 admin view-as switch
- capabilities:check  {features: [...]}      ack: {feature: bool}
- session:refresh     {}                     retry after a failed profile fetch

Server -> client events:
- session:state       role state and capability map
- notification:new    transient notification
- members:changed     profiles change (member managers only)
"""
import socketio

from kr_portal.core.exceptions import InvalidRole, RoleOverrideDenied
from kr_portal.core.logging import realtime_logger
from kr_portal.realtime.auth import SocketAuthGateway, authenticate_socket
from kr_portal.session.dashboard import DashboardSession, SessionRegistry

# cors_allowed_origins=[] - FastAPI's CORS middleware handles CORS
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=[],
    logger=False,
    engineio_logger=False,
)

registry = SessionRegistry()

_backend = None


def bind_backend(backend) -> None:
    """Set the backend used for profile reads and change feeds of new sessions."""
    global _backend
    _backend = backend


def _emitter(sid: str):
    async def emit(event: str, data: dict) -> None:
        await sio.emit(event, data, room=sid)
    return emit


@sio.event
async def connect(sid: str, environ: dict, auth: dict = None):
    is_authenticated, session = authenticate_socket(auth, environ)
    if not is_authenticated:
        realtime_logger.warning("Socket connection rejected", sid=sid)
        return False

    if _backend is None:
        realtime_logger.error("Socket connection rejected: backend not connected", sid=sid)
        return False

    dashboard = DashboardSession(
        sid=sid,
        auth=SocketAuthGateway(session),
        profiles=_backend,
        feed=_backend,
        emit=_emitter(sid),
    )
    registry.add(dashboard)
    try:
        await dashboard.open()
    except Exception as e:
        # A refused connection must not leave subscriptions behind
        realtime_logger.error("Socket connection rejected: session failed to open", error=e, sid=sid)
        registry.pop(sid)
        await dashboard.close()
        return False

    realtime_logger.info("Socket connected", sid=sid, user_id=session.user_id)
    return True


@sio.event
async def disconnect(sid: str):
    dashboard = registry.pop(sid)
    if dashboard is None:
        realtime_logger.info("Socket disconnected (unauthenticated)", sid=sid)
        return
    await dashboard.close()
    realtime_logger.info("Socket disconnected", sid=sid)


async def _require_session(sid: str):
    dashboard = registry.get(sid)
    if dashboard is None:
        await sio.emit("error", {"message": "Not authenticated"}, room=sid)
    return dashboard


@sio.on("auth:changed")
async def auth_changed(sid: str, data: dict = None):
    dashboard = await _require_session(sid)
    if dashboard is None:
        return {"ok": False, "error": "Not authenticated"}
    data = data or {}
    ok = await dashboard.handle_auth_event(data.get("event"), data.get("access_token"))
    return {"ok": ok, "session": dashboard.context.snapshot()}


@sio.on("role:set")
async def role_set(sid: str, data: dict = None):
    dashboard = await _require_session(sid)
    if dashboard is None:
        return {"ok": False, "error": "Not authenticated"}
    try:
        state = await dashboard.set_role((data or {}).get("role"))
    except (InvalidRole, RoleOverrideDenied) as e:
        return {"ok": False, "error": str(e)}
    return {"ok": True, "session": state}


@sio.on("capabilities:check")
async def capabilities_check(sid: str, data: dict = None):
    dashboard = await _require_session(sid)
    if dashboard is None:
        return {}
    features = (data or {}).get("features") or []
    if isinstance(features, str):
        features = [features]
    return dashboard.check(features)


@sio.on("session:refresh")
async def session_refresh(sid: str, data: dict = None):
    dashboard = await _require_session(sid)
    if dashboard is None:
        return {"ok": False, "error": "Not authenticated"}
    return {"ok": True, "session": await dashboard.refresh()}
