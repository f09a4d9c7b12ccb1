from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .context import AppContext
from .errors import FluentError
from .settings import Settings
from .routers import chat, credentials, preferences, story, translation

logger = logging.getLogger(__name__)


def create_app(
	settings: Optional[Settings] = None,
	*,
	transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
	settings = settings or Settings()
	logging.basicConfig(
		level=settings.log_level.upper(),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		yield
		await app.state.context.aclose()

	app = FastAPI(title="Get Fluent Now API", lifespan=lifespan)
	app.state.context = AppContext(settings, transport=transport)
	app.include_router(credentials.router)
	app.include_router(preferences.router)
	app.include_router(story.router)
	app.include_router(translation.router)
	app.include_router(chat.router)

	@app.exception_handler(FluentError)
	async def fluent_error_handler(request: Request, exc: FluentError):
		logger.info("%s %s failed: %s", request.method, request.url.path, exc.code)
		return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

	@app.get("/info")
	def info():
		ctx: AppContext = app.state.context
		return {"status": "ok", "gemini_configured": ctx.gateway.configured, "model": ctx.gateway.model}

	return app


def run() -> None:
	import uvicorn

	uvicorn.run("fluentnow.main:create_app", factory=True, host="127.0.0.1", port=8000)
