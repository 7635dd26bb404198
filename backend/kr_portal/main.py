import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from kr_portal.api import announcements, auth, health, members, session
from kr_portal.core.config import settings
from kr_portal.core.logging import api_logger
from kr_portal.core.middleware import RequestContextMiddleware, http_exception_handler
from kr_portal.realtime.socket import bind_backend, registry, sio

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    app.state.backend = None
    if not settings.TESTING:
        from kr_portal.backend.supabase_backend import SupabaseBackend
        try:
            app.state.backend = await SupabaseBackend.connect()
        except Exception as e:
            # readyz reports 503 until the backend is reachable
            api_logger.error("Could not connect to Supabase", error=e)
    bind_backend(app.state.backend)
    yield
    # Shutdown
    await registry.close_all()
    backend = app.state.backend
    if backend is not None:
        await backend.close()
    bind_backend(None)


app = FastAPI(
    title="KR Portal API",
    description="Role capabilities, dashboard sessions and realtime notifications for the KR team portal",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)

app.include_router(health.router, prefix="", tags=["Health"])
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(session.router, prefix="/api", tags=["Session"])
app.include_router(members.router, prefix="/api/members", tags=["Members"])
app.include_router(announcements.router, prefix="/api/announcements", tags=["Announcements"])

# Socket.IO at /socket.io, everything else to FastAPI: `uvicorn kr_portal.main:asgi_app`
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path="socket.io")
