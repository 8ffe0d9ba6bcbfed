"""Policy helpers and guard checks for fezzes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import AbstractSet, Optional

from fezhub.domain.barrels import models as barrel_models
from fezhub.domain.barrels.exceptions import InvariantViolation
from fezhub.domain.fez.exceptions import FezHidden, Forbidden
from fezhub.domain.fez.timefmt import date_from_parameter
from fezhub.infra.auth import AuthenticatedUser


def ensure_owner(barrel: barrel_models.Barrel, user_id: str) -> None:
	if barrel.owner_id != user_id:
		raise Forbidden("user does not own fez")


def ensure_not_hidden(barrel: barrel_models.Barrel, blocks: AbstractSet[str]) -> None:
	if barrel.owner_id in blocks:
		raise FezHidden()


def ensure_can_create_content(user: AuthenticatedUser, *, now: Optional[datetime] = None) -> None:
	if user.temp_quarantine_until is not None:
		if (now or datetime.now(timezone.utc)) <= user.temp_quarantine_until:
			raise Forbidden("user is temporarily quarantined")
	if not user.access_level.can_create_content():
		raise Forbidden("user cannot create content")


def require_max_capacity(barrel: barrel_models.Barrel) -> int:
	return barrel_models.parse_capacity(barrel.user_info)


def lenient_max_capacity(barrel: barrel_models.Barrel) -> int:
	try:
		return barrel_models.parse_capacity(barrel.user_info)
	except InvariantViolation:
		return 0


def is_open(barrel: barrel_models.Barrel, *, now: datetime, cutoff: datetime) -> bool:
	"""True when the fez has a free slot and started after ``cutoff``.

	A missing or invalid capacity counts as unlimited and a missing or
	unparseable start time counts as ``now``.
	"""
	max_capacity = lenient_max_capacity(barrel)
	has_room = max_capacity == 0 or len(barrel.model_ids) < max_capacity
	start = date_from_parameter(barrel_models.first_value(barrel.user_info, "startTime")) or now
	return has_room and start > cutoff
