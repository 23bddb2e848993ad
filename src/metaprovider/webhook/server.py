"""Webhook HTTP server receiving Cloud API callbacks.

Raises three raw events: ``ready`` once listening, ``auth_failure`` when the
subscription handshake presents a wrong verify token, and ``message`` for each
inbound message found in a callback.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from typing import Any

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from metaprovider.errors import ConfigError
from metaprovider.events import EventEmitter
from metaprovider.webhook.inbound import parse_webhook_payload

logger = logging.getLogger(__name__)


class MetaWebhookServer(EventEmitter):
    EVENTS = frozenset({"auth_failure", "ready", "message"})

    def __init__(
        self,
        *,
        verify_token: str,
        host: str = "0.0.0.0",
        port: int = 3000,
        path: str = "/webhook",
    ) -> None:
        super().__init__()
        self._verify_token = verify_token
        self.host = host
        self.port = port
        self.path = path.rstrip("/") or "/webhook"
        self.app = self._build_app()
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._serve_task is not None and not self._serve_task.done()

    def _token_matches(self, token: str | None) -> bool:
        if not token or not self._verify_token:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self._verify_token.encode("utf-8"))

    def _build_app(self) -> FastAPI:
        router = APIRouter(prefix=self.path, tags=["whatsapp"])

        @router.get("")
        async def verify(request: Request) -> Response:
            mode = request.query_params.get("hub.mode")
            token = request.query_params.get("hub.verify_token")
            challenge = request.query_params.get("hub.challenge")

            if mode == "subscribe" and self._token_matches(token) and challenge:
                return Response(content=challenge, media_type="text/plain")
            logger.warning("Webhook verification failed (mode=%s)", mode)
            if mode == "subscribe" and not self._token_matches(token):
                self.emit("auth_failure", {"reason": "verify_token_mismatch", "mode": mode})
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="verification failed")

        @router.post("")
        async def inbound(payload: dict[str, Any]) -> JSONResponse:
            messages = parse_webhook_payload(payload)
            for message in messages:
                self.emit("message", message)
            return JSONResponse(status_code=200, content={"accepted": True, "messages": len(messages)})

        app = FastAPI(title="metaprovider webhook", version="0.1.0")
        app.include_router(router)
        return app

    async def start(self) -> None:
        """Serve the app with uvicorn in the background and emit ``ready``."""
        if self.running:
            return
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_config=None,
            lifespan="off",
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.get_running_loop().create_task(
            self._server.serve(), name="metaprovider-webhook"
        )
        while not self._server.started:
            if self._serve_task.done():
                try:
                    await self._serve_task
                except SystemExit as exc:
                    raise ConfigError(
                        f"webhook server failed to listen on {self.host}:{self.port}"
                    ) from exc
                raise ConfigError(f"webhook server exited before listening on port {self.port}")
            await asyncio.sleep(0.05)
        logger.info("Webhook listening on %s:%d%s", self.host, self.port, self.path)
        self.emit("ready")

    async def stop(self) -> None:
        if self._server is None or self._serve_task is None:
            return
        self._server.should_exit = True
        await self._serve_task
        self._server = None
        self._serve_task = None
