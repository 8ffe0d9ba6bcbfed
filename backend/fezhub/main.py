"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI

from fezhub.api import fez, ops
from fezhub.api.errors import install_error_handlers
from fezhub.infra import postgres
from fezhub.obs import init as obs_init
from fezhub.settings import settings

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	try:
		await postgres.init_pool()
	except (OSError, asyncio.TimeoutError, asyncpg.PostgresError):
		# repositories fall back to the in-process store
		log.warning("postgres_unavailable", exc_info=True)
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Fez Hub", lifespan=lifespan)
install_error_handlers(app)
obs_init(app)

app.include_router(ops.router, tags=["ops"])
app.include_router(fez.router, prefix=settings.api_prefix)
