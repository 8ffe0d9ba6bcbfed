"""Barrel store service: creation, lookup, versioned saves and string-set helpers."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from fezhub.domain.barrels import models
from fezhub.domain.barrels.exceptions import AlreadyMember, Conflict, NotFound, WrongCategory
from fezhub.domain.barrels.repository import BarrelRepository
from fezhub.obs import metrics as obs_metrics

log = logging.getLogger(__name__)


class BarrelService:
	def __init__(self, repository: BarrelRepository | None = None) -> None:
		self._repo = repository or BarrelRepository()

	async def create(
		self,
		owner_id: str,
		barrel_type: models.BarrelType,
		name: str,
		model_ids: Iterable[str] = (),
		user_info: Optional[models.UserInfo] = None,
	) -> models.Barrel:
		members = list(model_ids)
		if len(set(members)) != len(members):
			raise AlreadyMember("duplicate_initial_member")
		barrel = await self._repo.create(
			owner_id=owner_id,
			barrel_type=barrel_type,
			name=name,
			model_ids=members,
			user_info=user_info or {},
		)
		log.info("barrel_created", extra=models.barrel_summary(barrel))
		return barrel

	async def find(self, barrel_id: str) -> models.Barrel:
		barrel = await self._repo.get(barrel_id)
		if barrel is None:
			raise NotFound("barrel_not_found")
		return barrel

	async def find_typed(self, barrel_id: str, barrel_type: models.BarrelType) -> models.Barrel:
		barrel = await self.find(barrel_id)
		if barrel.barrel_type != barrel_type:
			raise WrongCategory(f"barrel is not type .{barrel_type.value}")
		return barrel

	async def save(self, barrel: models.Barrel) -> None:
		try:
			await self._repo.save(barrel)
		except Conflict:
			obs_metrics.inc_barrel_conflict(barrel.barrel_type.value)
			log.warning("barrel_save_conflict", extra=models.barrel_summary(barrel))
			raise

	async def delete(self, barrel_id: str) -> None:
		if not await self._repo.delete(barrel_id):
			raise NotFound("barrel_not_found")

	async def query_by_category(
		self,
		barrel_type: models.BarrelType,
		*,
		excluding_owners: Iterable[str] = (),
	) -> List[models.Barrel]:
		return await self._repo.list_by_type(barrel_type, excluding_owners=excluding_owners)

	async def query_by_owner_and_category(self, owner_id: str, barrel_type: models.BarrelType) -> List[models.Barrel]:
		return await self._repo.list_by_owner(owner_id, barrel_type)

	async def query_by_member(self, barrel_type: models.BarrelType, member_id: str) -> List[models.Barrel]:
		return await self._repo.list_by_member(barrel_type, member_id)

	# Bookmarks and keyword lists: one barrel per owner and type, values in user_info.

	async def get_bookmark_barrel(self, owner_id: str, barrel_type: models.BarrelType) -> Optional[models.Barrel]:
		barrels = await self._repo.list_by_owner(owner_id, barrel_type)
		return barrels[0] if barrels else None

	async def has_bookmarked(self, owner_id: str, barrel_type: models.BarrelType, object_id: str) -> bool:
		_require_type(barrel_type, models.BOOKMARK_TYPES)
		barrel = await self.get_bookmark_barrel(owner_id, barrel_type)
		if barrel is None:
			return False
		return str(object_id) in (barrel.user_info.get(models.BOOKMARKS_KEY) or [])

	async def add_bookmark(self, owner_id: str, barrel_type: models.BarrelType, object_id: str) -> models.Barrel:
		_require_type(barrel_type, models.BOOKMARK_TYPES)
		return await self._add_value(owner_id, barrel_type, models.BOOKMARKS_KEY, str(object_id), "Bookmarks")

	async def remove_bookmark(self, owner_id: str, barrel_type: models.BarrelType, object_id: str) -> Optional[models.Barrel]:
		_require_type(barrel_type, models.BOOKMARK_TYPES)
		return await self._remove_value(owner_id, barrel_type, models.BOOKMARKS_KEY, str(object_id))

	async def add_word(self, owner_id: str, barrel_type: models.BarrelType, word: str) -> models.Barrel:
		_require_type(barrel_type, models.WORD_TYPES)
		return await self._add_value(owner_id, barrel_type, models.WORDS_KEY, word.strip().lower(), "Keywords")

	async def remove_word(self, owner_id: str, barrel_type: models.BarrelType, word: str) -> Optional[models.Barrel]:
		_require_type(barrel_type, models.WORD_TYPES)
		return await self._remove_value(owner_id, barrel_type, models.WORDS_KEY, word.strip().lower())

	async def _add_value(
		self,
		owner_id: str,
		barrel_type: models.BarrelType,
		key: str,
		value: str,
		name: str,
	) -> models.Barrel:
		barrel = await self.get_bookmark_barrel(owner_id, barrel_type)
		if barrel is None:
			return await self.create(owner_id, barrel_type, name, user_info={key: [value]})
		values = barrel.user_info.setdefault(key, [])
		if value not in values:
			values.append(value)
			await self.save(barrel)
		return barrel

	async def _remove_value(
		self,
		owner_id: str,
		barrel_type: models.BarrelType,
		key: str,
		value: str,
	) -> Optional[models.Barrel]:
		barrel = await self.get_bookmark_barrel(owner_id, barrel_type)
		if barrel is None:
			return None
		values = barrel.user_info.get(key) or []
		if value in values:
			values.remove(value)
			barrel.user_info[key] = values
			await self.save(barrel)
		return barrel


def _require_type(barrel_type: models.BarrelType, allowed: frozenset) -> None:
	if barrel_type not in allowed:
		raise WrongCategory(f"barrel type .{barrel_type.value} does not hold this value")
