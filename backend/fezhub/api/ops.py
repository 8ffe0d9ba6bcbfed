"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fezhub.infra import postgres
from fezhub.infra.redis import redis_client
from fezhub.settings import settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_metrics_access(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	token = settings.obs_admin_token
	if not token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	if _resolve_token(X_Admin_Token, authorization) != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def _redis_ok(timeout: float = 0.2) -> bool:
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
		return True
	except Exception:  # pragma: no cover - depends on runtime
		LOGGER.warning("Redis health check failed", exc_info=True)
		return False


async def _postgres_state() -> str:
	try:
		pool = await postgres.get_pool()
	except AssertionError:
		return "memory"
	except Exception:  # pragma: no cover - connection bootstrap failure
		LOGGER.warning("Postgres connection unavailable", exc_info=True)
		return "unavailable"
	try:
		async with pool.acquire() as conn:
			await conn.execute("SELECT 1")
		return "ok"
	except Exception:  # pragma: no cover - depends on runtime
		LOGGER.warning("Postgres health check failed", exc_info=True)
		return "error"


@router.get("/health")
async def health() -> Dict[str, Any]:
	return {
		"status": "ok",
		"service": settings.service_name,
		"commit": settings.git_commit,
		"redis": await _redis_ok(),
		"postgres": await _postgres_state(),
	}


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
