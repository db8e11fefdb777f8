import logging
import os

from fastapi import Depends, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, PlainTextResponse

from .auth import AuthGate, require_signature
from .config import Settings
from .files import list_directory, resolve_under_root
from .schemas import DirectoryListing, ErrorBody, HealthResponse
from .trust import TrustAnchor

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("resource_server")

_AUTH_RESPONSES = {401: {"model": ErrorBody}, 403: {"model": ErrorBody}}


def create_app(settings: Settings, anchor: TrustAnchor) -> FastAPI:
    """Build the application around an already-fetched trust anchor.

    Taking the anchor as an argument means no request can reach the gate
    before trust is established.
    """
    app = FastAPI(
        title="EC Resource Server",
        description=(
            "Serves files from a local root to callers holding the trust-anchor key.\n\n"
            "**Auth**: `Authorization: <timestamp>,<signature>` where signature signs "
            "`<user>,<identity>,<timestamp>`."
        ),
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.anchor = anchor
    app.state.auth_gate = AuthGate(
        anchor, settings.user, settings.identity, max_skew_seconds=settings.max_skew_seconds,
    )

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    @app.get("/health", tags=["system"], response_model=HealthResponse)
    def health():
        return HealthResponse(
            identity=settings.identity,
            curve=settings.curve,
            trust_url=anchor.url,
            max_skew_seconds=settings.max_skew_seconds,
        )

    @app.get("/identity", tags=["system"], response_class=PlainTextResponse)
    def identity():
        """Return the identity string clients must include in the signed payload."""
        return settings.identity

    @app.get("/resource", tags=["resource"], responses=_AUTH_RESPONSES,
             dependencies=[Depends(require_signature)])
    def resource_root():
        return _serve(settings, "")

    @app.get("/resource/{path:path}", tags=["resource"], responses=_AUTH_RESPONSES,
             dependencies=[Depends(require_signature)])
    def resource(path: str):
        return _serve(settings, path)

    @app.websocket("/ws")
    async def websocket(ws: WebSocket):
        await ws.accept()
        try:
            while True:
                await ws.send_text(await ws.receive_text())
        except WebSocketDisconnect:
            log.debug("websocket closed")

    return app


def _serve(settings: Settings, path: str):
    try:
        target = resolve_under_root(settings.root, path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail={"error": f"Not found: {path}"})

    if target.is_dir():
        relative = target.relative_to(settings.root.resolve()).as_posix()
        return DirectoryListing(path="" if relative == "." else relative, entries=list_directory(target))
    return FileResponse(target)
