"""Bridge server: executes relayed commands under its own policy.

Exposes a single endpoint, ``POST /execute``, taking
``{"command": str, "options": {...}}``. The caller's judgement is never
trusted: every request goes through this host's CommandGateway, which applies
the local allowlist before anything runs.

Responses:
- 200 ``{"output": ..., "stderr": ...}`` on success
- 403 ``{"error": ...}`` when the policy or translation rejects the command
- 500 ``{"error": ...}`` when execution fails or times out
- 404 for any other path or method
"""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ..gateway import CommandGateway
from ..types import DEFAULT_TIMEOUT_MS, CommandOutcome, CommandRequest, ErrorKind

logger = logging.getLogger(__name__)

DEFAULT_LOG_FILE = "bridge_server.log"

_REJECTION_KINDS = frozenset({ErrorKind.POLICY_VIOLATION, ErrorKind.TRANSLATION_REJECTED})


class BridgeOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    working_dir: Optional[str] = Field(default=None, alias="workingDir")
    script: Optional[str] = None


class BridgeEnvelope(BaseModel):
    command: str
    options: BridgeOptions = Field(default_factory=BridgeOptions)

    def to_request(self) -> CommandRequest:
        return CommandRequest(
            command=self.command,
            working_dir=self.options.working_dir,
            timeout_ms=self.options.timeout,
            script=self.options.script,
        )


def create_audit_logger(log_path: Union[str, Path]) -> logging.Logger:
    """Logger writing timestamped lines to an append-only file."""
    audit = logging.getLogger(f"{__name__}.audit.{Path(log_path).resolve()}")
    audit.setLevel(logging.INFO)
    audit.propagate = False
    if not audit.handlers:
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        audit.addHandler(handler)
    return audit


def close_audit_logger(audit: logging.Logger) -> None:
    for handler in list(audit.handlers):
        audit.removeHandler(handler)
        handler.close()


def outcome_response(outcome: CommandOutcome) -> JSONResponse:
    if not outcome.is_error:
        return JSONResponse({"output": outcome.stdout, "stderr": outcome.stderr})

    body: dict[str, Any] = {"error": outcome.message}
    if outcome.error_kind is not None:
        body["kind"] = outcome.error_kind.value
    if outcome.error_kind in _REJECTION_KINDS:
        return JSONResponse(body, status_code=403)

    if outcome.result is not None:
        body["output"] = outcome.stdout
        body["stderr"] = outcome.stderr
        body["exitCode"] = outcome.result.exit_code
    return JSONResponse(body, status_code=500)


def create_app(gateway: CommandGateway, log_path: Union[str, Path] = DEFAULT_LOG_FILE) -> Starlette:
    """Build the bridge ASGI application around ``gateway``."""
    audit = create_audit_logger(log_path)

    async def execute(request: Request) -> Response:
        if request.method != "POST":
            raise HTTPException(status_code=404)

        client = request.client.host if request.client else "unknown"
        try:
            envelope = BridgeEnvelope.model_validate(json.loads(await request.body()))
        except (ValueError, ValidationError) as e:
            audit.warning("REJECTED %s invalid request: %s", client, e)
            return JSONResponse({"error": f"Invalid request: {e}"}, status_code=400)

        outcome = await run_in_threadpool(gateway.execute, envelope.to_request())

        if outcome.error_kind in _REJECTION_KINDS:
            audit.warning("REJECTED %s %r: %s", client, envelope.command, outcome.message)
        elif outcome.is_error:
            audit.info("FAILED %s %r: %s", client, envelope.command, outcome.message)
        else:
            audit.info("ACCEPTED %s %r", client, envelope.command)
        return outcome_response(outcome)

    async def not_found(request: Request, exc: Exception) -> Response:
        return JSONResponse({"error": "Not found"}, status_code=404)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        create_audit_logger(log_path)
        try:
            yield
        finally:
            close_audit_logger(audit)

    return Starlette(
        routes=[
            Route(
                "/execute",
                execute,
                methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            ),
        ],
        exception_handlers={404: not_found, 405: not_found},
        lifespan=lifespan,
    )


def serve(
    gateway: CommandGateway,
    host: str = "127.0.0.1",
    port: int = 8731,
    log_path: Union[str, Path] = DEFAULT_LOG_FILE,
) -> None:
    import uvicorn

    logger.info("Bridge server listening on http://%s:%d/execute", host, port)
    uvicorn.run(create_app(gateway, log_path), host=host, port=port, log_level="warning")
