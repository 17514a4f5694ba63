"""FastAPI command endpoint - driving adapter for external collaborators.

The gesture daemon, keyboard helper and diagnostics tooling post discrete
commands here. Requests never touch session state directly: commands go
into a CommandInbox that the GUI thread drains into
SessionController.dispatch().

Endpoints:
    GET  /health              - Server status
    GET  /commands            - Accepted command names
    POST /commands/{name}     - Queue a command (optional JSON {"value": ...})
    GET  /state               - Last published session snapshot

Security:
    - Localhost-only by default (bind 127.0.0.1)
    - Optional token auth via --token flag (X-API-Token header)
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ubk_kiosk.__version__ import __version__
from ubk_kiosk.core.controllers import CommandInbox
from ubk_kiosk.core.models import COMMAND_ALIASES, Command, KioskCommand

log = logging.getLogger(__name__)

app = FastAPI(title="UBK Kiosk", version=__version__)

# ── Shared inbox + published snapshot ────────────────────────────────

inbox = CommandInbox()

_state_lock = threading.Lock()
_state_snapshot: Dict[str, Any] = {}


def publish_state(snapshot: Dict[str, Any]) -> None:
    """Called from the GUI thread after each tick."""
    global _state_snapshot  # noqa: PLW0603
    with _state_lock:
        _state_snapshot = dict(snapshot)


# ── Token auth middleware (optional, enabled via --token) ─────────────

_api_token: Optional[str] = None


def configure_auth(token: Optional[str]) -> None:
    """Set the API token. Called by the CLI run command."""
    global _api_token  # noqa: PLW0603
    _api_token = token


@app.middleware("http")
async def check_token(request: Request, call_next):
    """Reject requests without valid token (if token is configured)."""
    if _api_token and request.url.path != "/health":
        if request.headers.get("X-API-Token") != _api_token:
            return JSONResponse(status_code=401, content={"detail": "Invalid token"})
    return await call_next(request)


# ── Pydantic models ──────────────────────────────────────────────────

class CommandRequest(BaseModel):
    value: Any = None


class CommandResponse(BaseModel):
    command: str
    queued: bool


# ── Endpoints ────────────────────────────────────────────────────────

@app.get("/health")
def health() -> dict:
    """Health check (always accessible, no auth required)."""
    return {"status": "ok", "version": __version__}


@app.get("/commands")
def list_commands() -> dict:
    return {
        "commands": [c.value for c in Command],
        "aliases": {alias: cmd.value for alias, cmd in COMMAND_ALIASES.items()},
    }


@app.post("/commands/{name}")
def post_command(name: str, body: Optional[CommandRequest] = None) -> CommandResponse:
    """Queue a command for the GUI thread."""
    command = KioskCommand.parse(name, body.value if body else None)
    if command is None:
        raise HTTPException(status_code=404, detail=f"Unknown command '{name}'")
    if not inbox.put(command):
        raise HTTPException(status_code=503, detail="Command inbox full")
    log.debug("API queued %s", command.command.value)
    return CommandResponse(command=command.command.value, queued=True)


@app.get("/state")
def get_state() -> dict:
    with _state_lock:
        return dict(_state_snapshot)


# ── Server thread ────────────────────────────────────────────────────

def start_server(host: str = "127.0.0.1", port: int = 8765,
                 token: Optional[str] = None) -> threading.Thread:
    """Run uvicorn in a daemon thread next to the Qt event loop."""
    import uvicorn

    configure_auth(token)
    if host not in ("127.0.0.1", "localhost", "::1"):
        log.warning("API bound to %s - reachable from the network", host)
    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="ubk-kiosk-api", daemon=True)
    thread.start()
    log.info("Command API listening on http://%s:%d", host, port)
    return thread
