"""Authentication helpers for FastAPI endpoints.

Bearer JWTs (HS256, see ``fezhub.infra.jwt``) are always accepted. In
development the ``X-User-*`` headers are honoured as well so local tools and
tests can act as any user.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fezhub.domain.users.access import UserAccessLevel
from fezhub.infra import jwt as jwt_helper
from fezhub.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	access_level: UserAccessLevel = UserAccessLevel.VERIFIED
	username: Optional[str] = None
	session_id: Optional[str] = None
	# content creation is refused until this moment passes
	temp_quarantine_until: Optional[datetime] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def _parse_quarantine(raw: object) -> Optional[datetime]:
	if raw is None:
		return None
	try:
		return datetime.fromtimestamp(float(raw), tz=timezone.utc)
	except (TypeError, ValueError, OverflowError, OSError) as exc:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token") from exc


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	level = UserAccessLevel.from_raw_string(str(payload.get("access_level") or ""))
	if level is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	username = payload.get("username")
	session_id = payload.get("sid")
	quarantine_until = _parse_quarantine(payload.get("quarantine_until"))
	return AuthenticatedUser(
		id=sub,
		access_level=level,
		username=str(username) if username is not None else None,
		session_id=str(session_id) if session_id is not None else None,
		temp_quarantine_until=quarantine_until,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_access: Optional[str] = Header(default=None, alias="X-User-Access"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user or fail with 401."""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	if settings.is_dev() and x_user_id:
		level = UserAccessLevel.from_raw_string(x_user_access) or UserAccessLevel.VERIFIED
		return AuthenticatedUser(id=x_user_id, access_level=level)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


async def get_active_user(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
	"""Like ``get_current_user`` but rejects banned accounts outright."""
	if user.access_level == UserAccessLevel.BANNED:
		raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="account_banned")
	return user
