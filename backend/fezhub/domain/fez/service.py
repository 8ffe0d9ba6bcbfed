"""Fez lifecycle service layer.

A fez is a ``friendlyFez`` barrel: ``model_ids`` is the roster in join order
and ``user_info`` holds the activity details. Active members and the waitlist
are never stored; every view derives them from the roster and the capacity,
so leaving the fez promotes the first waitlisted member on the next read.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import AbstractSet, Iterable, List, Optional

from fezhub.domain.barrels import BarrelService
from fezhub.domain.barrels.models import Barrel, BarrelType, FezInfo
from fezhub.domain.fez import policy, roster, schemas
from fezhub.domain.fez.exceptions import (
	AlreadyMember,
	Forbidden,
	InvariantViolation,
	NotFound,
	NotMember,
	TargetNotFound,
	WrongCategory,
)
from fezhub.domain.fez.models import FezType
from fezhub.domain.fez.posts import FezPostRepository
from fezhub.domain.fez.timefmt import fez_time_string
from fezhub.domain.users import UserCache, UserHeader
from fezhub.infra import images
from fezhub.infra.auth import AuthenticatedUser
from fezhub.obs import metrics as obs_metrics
from fezhub.settings import settings

log = logging.getLogger(__name__)

CANCELLED = "[CANCELLED]"


def _fez_info(data: schemas.FezContentData) -> FezInfo:
	return FezInfo(
		fez_type=data.fez_type.value,
		info=data.info,
		start_time=data.start_time,
		end_time=data.end_time,
		location=data.location,
		min_capacity=data.min_capacity,
		max_capacity=data.max_capacity,
	)


def _payload(barrel: Barrel) -> FezInfo:
	payload = barrel.payload()
	if not isinstance(payload, FezInfo):
		raise WrongCategory(f"barrel is not type .{BarrelType.FRIENDLY_FEZ.value}")
	return payload


class FezService:
	def __init__(
		self,
		barrels: BarrelService | None = None,
		posts: FezPostRepository | None = None,
		users: UserCache | None = None,
	) -> None:
		self._barrels = barrels or BarrelService()
		self._posts = posts or FezPostRepository()
		self._users = users or UserCache()
		self._locks: dict[str, asyncio.Lock] = {}

	def _lock(self, fez_id: str) -> asyncio.Lock:
		# one load/mutate/save per fez at a time in this process
		if fez_id not in self._locks:
			self._locks[fez_id] = asyncio.Lock()
		return self._locks[fez_id]

	@staticmethod
	def types() -> List[str]:
		return [fez_type.label for fez_type in FezType]

	# Queries

	async def joined(self, auth_user: AuthenticatedUser) -> List[schemas.FezData]:
		barrels = await self._barrels.query_by_member(BarrelType.FRIENDLY_FEZ, auth_user.id)
		return await self._build_views(barrels, auth_user.id)

	async def open(self, auth_user: AuthenticatedUser) -> List[schemas.FezData]:
		blocks = await self._users.get_blocks(auth_user.id)
		barrels = await self._barrels.query_by_category(BarrelType.FRIENDLY_FEZ, excluding_owners=blocks)
		now = datetime.now(timezone.utc)
		cutoff = now - timedelta(seconds=settings.open_fez_grace_seconds)
		open_barrels = [barrel for barrel in barrels if policy.is_open(barrel, now=now, cutoff=cutoff)]
		return await self._build_views(open_barrels, auth_user.id, blocks=blocks)

	async def owned(self, auth_user: AuthenticatedUser) -> List[schemas.FezData]:
		barrels = await self._barrels.query_by_owner_and_category(auth_user.id, BarrelType.FRIENDLY_FEZ)
		return await self._build_views(barrels, auth_user.id)

	async def get(self, fez_id: str, auth_user: AuthenticatedUser) -> schemas.FezData:
		barrel = await self._barrels.find_typed(fez_id, BarrelType.FRIENDLY_FEZ)
		blocks = await self._users.get_blocks(auth_user.id)
		policy.ensure_not_hidden(barrel, blocks)
		return await self._view_with_posts(barrel, auth_user.id, blocks=blocks)

	# Lifecycle

	async def create(self, auth_user: AuthenticatedUser, data: schemas.FezContentData) -> schemas.FezData:
		policy.ensure_can_create_content(auth_user)
		barrel = await self._barrels.create(
			auth_user.id,
			BarrelType.FRIENDLY_FEZ,
			data.title,
			model_ids=[auth_user.id],
			user_info=_fez_info(data).to_user_info(),
		)
		obs_metrics.inc_fez_action("create")
		log.info("fez_created", extra={"fez_id": barrel.id, "owner_id": auth_user.id})
		return await self.build_view(barrel, auth_user.id)

	async def join(self, fez_id: str, auth_user: AuthenticatedUser) -> schemas.FezData:
		async with self._lock(fez_id):
			barrel = await self._barrels.find_typed(fez_id, BarrelType.FRIENDLY_FEZ)
			blocks = await self._users.get_blocks(auth_user.id)
			policy.ensure_not_hidden(barrel, blocks)
			policy.require_max_capacity(barrel)
			if barrel.has_member(auth_user.id):
				raise AlreadyMember("user is already in fez")
			# over capacity is fine: the joiner lands on the waitlist
			barrel.model_ids.append(auth_user.id)
			await self._barrels.save(barrel)
		obs_metrics.inc_fez_action("join")
		log.info("fez_joined", extra={"fez_id": barrel.id, "member_id": auth_user.id})
		return await self.build_view(barrel, auth_user.id, blocks=blocks)

	async def unjoin(self, fez_id: str, auth_user: AuthenticatedUser) -> schemas.FezData:
		async with self._lock(fez_id):
			barrel = await self._barrels.find_typed(fez_id, BarrelType.FRIENDLY_FEZ)
			policy.require_max_capacity(barrel)
			changed = barrel.has_member(auth_user.id)
			if changed:
				barrel.model_ids.remove(auth_user.id)
				await self._barrels.save(barrel)
		if changed:
			obs_metrics.inc_fez_action("unjoin")
			log.info("fez_unjoined", extra={"fez_id": barrel.id, "member_id": auth_user.id})
		return await self.build_view(barrel, auth_user.id)

	async def add_member(self, fez_id: str, auth_user: AuthenticatedUser, target_id: str) -> schemas.FezData:
		async with self._lock(fez_id):
			barrel = await self._load_owned(fez_id, auth_user)
			policy.require_max_capacity(barrel)
			await self._require_user(target_id)
			if barrel.has_member(target_id):
				raise AlreadyMember("user is already in fez")
			barrel.model_ids.append(target_id)
			await self._barrels.save(barrel)
		obs_metrics.inc_fez_action("owner_add")
		log.info("fez_member_added", extra={"fez_id": barrel.id, "member_id": target_id})
		return await self.build_view(barrel, auth_user.id)

	async def remove_member(self, fez_id: str, auth_user: AuthenticatedUser, target_id: str) -> schemas.FezData:
		async with self._lock(fez_id):
			barrel = await self._load_owned(fez_id, auth_user)
			policy.require_max_capacity(barrel)
			await self._require_user(target_id)
			if not barrel.has_member(target_id):
				raise NotMember("user is not in fez")
			barrel.model_ids.remove(target_id)
			await self._barrels.save(barrel)
		obs_metrics.inc_fez_action("owner_remove")
		log.info("fez_member_removed", extra={"fez_id": barrel.id, "member_id": target_id})
		return await self.build_view(barrel, auth_user.id)

	async def update(self, fez_id: str, auth_user: AuthenticatedUser, data: schemas.FezContentData) -> schemas.FezData:
		async with self._lock(fez_id):
			barrel = await self._load_owned(fez_id, auth_user)
			barrel.name = data.title
			barrel.user_info.update(_fez_info(data).to_user_info())
			await self._barrels.save(barrel)
		obs_metrics.inc_fez_action("update")
		log.info("fez_updated", extra={"fez_id": barrel.id})
		return await self.build_view(barrel, auth_user.id)

	async def cancel(self, fez_id: str, auth_user: AuthenticatedUser) -> schemas.FezData:
		"""Return the fez as cancelled. Nothing is stored; the next read shows it unchanged."""
		barrel = await self._load_owned(fez_id, auth_user)
		info = _payload(barrel)
		obs_metrics.inc_fez_action("cancel")
		log.info("fez_cancelled", extra={"fez_id": barrel.id})
		return schemas.FezData(
			fez_id=barrel.id,
			owner_id=barrel.owner_id,
			fez_type=info.fez_type,
			title=f"{CANCELLED} {barrel.name}",
			info=f"{CANCELLED} {info.info}",
			start_time=CANCELLED,
			end_time=CANCELLED,
			location=f"{CANCELLED} {info.location}",
			seamonkeys=[],
			waiting_list=[],
		)

	# Discussion

	async def posts_for(
		self,
		fez_id: str,
		blocks: AbstractSet[str],
		mutes: AbstractSet[str],
	) -> List[schemas.FezPostData]:
		posts = await self._posts.list_for_fez(fez_id, excluding_authors=set(blocks) | set(mutes))
		return [schemas.FezPostData.from_domain(post) for post in posts]

	async def add_post(
		self,
		fez_id: str,
		auth_user: AuthenticatedUser,
		data: schemas.PostCreateData,
	) -> schemas.FezData:
		barrel = await self._barrels.find_typed(fez_id, BarrelType.FRIENDLY_FEZ)
		blocks = await self._users.get_blocks(auth_user.id)
		policy.ensure_not_hidden(barrel, blocks)
		policy.ensure_can_create_content(auth_user)
		image_bytes = images.decode_image_data(data.image_data) if data.image_data else None
		filename = await images.process_image(image_bytes, images.ImageCategory.FEZ_POST)
		post = await self._posts.create(fez_id=barrel.id, author_id=auth_user.id, text=data.text, image=filename)
		obs_metrics.inc_fez_post("create")
		log.info("fez_post_created", extra={"fez_id": barrel.id, "post_id": post.id})
		return await self._view_with_posts(barrel, auth_user.id, blocks=blocks)

	async def delete_post(self, post_id: str, auth_user: AuthenticatedUser) -> schemas.FezData:
		post = await self._posts.get(post_id)
		if post is None:
			raise NotFound("post not found")
		if post.author_id != auth_user.id:
			raise Forbidden("user cannot delete post")
		try:
			barrel = await self._barrels.find(post.fez_id)
		except NotFound as exc:
			raise InvariantViolation("fez not found") from exc
		blocks = await self._users.get_blocks(auth_user.id)
		policy.ensure_not_hidden(barrel, blocks)
		await self._posts.delete(post.id)
		obs_metrics.inc_fez_post("delete")
		log.info("fez_post_deleted", extra={"fez_id": barrel.id, "post_id": post.id})
		return await self._view_with_posts(barrel, auth_user.id, blocks=blocks)

	# View assembly

	async def build_view(
		self,
		barrel: Barrel,
		user_id: str,
		*,
		blocks: Optional[AbstractSet[str]] = None,
	) -> schemas.FezData:
		"""Project a fez for one requester: mask their blocks, then split by capacity."""
		info = _payload(barrel)
		if blocks is None:
			blocks = await self._users.get_blocks(user_id)
		members = await self._member_headers(barrel.model_ids)
		active, waiting = roster.resolve(roster.mask(members, blocks), info.max_capacity)
		return schemas.FezData(
			fez_id=barrel.id,
			owner_id=barrel.owner_id,
			fez_type=info.fez_type,
			title=barrel.name,
			info=info.info,
			start_time=fez_time_string(info.start_time),
			end_time=fez_time_string(info.end_time),
			location=info.location,
			seamonkeys=[schemas.SeaMonkeyData.from_domain(m) for m in active],
			waiting_list=[schemas.SeaMonkeyData.from_domain(m) for m in waiting],
		)

	async def _build_views(
		self,
		barrels: Iterable[Barrel],
		user_id: str,
		*,
		blocks: Optional[AbstractSet[str]] = None,
	) -> List[schemas.FezData]:
		if blocks is None:
			blocks = await self._users.get_blocks(user_id)
		return [await self.build_view(barrel, user_id, blocks=blocks) for barrel in barrels]

	async def _view_with_posts(self, barrel: Barrel, user_id: str, *, blocks: AbstractSet[str]) -> schemas.FezData:
		view = await self.build_view(barrel, user_id, blocks=blocks)
		mutes = await self._users.get_mutes(user_id)
		view.posts = await self.posts_for(barrel.id, blocks, mutes)
		return view

	async def _member_headers(self, member_ids: List[str]) -> List[UserHeader]:
		# a member missing from the cache still holds its slot
		found = {header.user_id: header for header in await self._users.get_headers(member_ids)}
		return [found.get(mid) or UserHeader(user_id=mid, username="") for mid in member_ids]

	async def _load_owned(self, fez_id: str, auth_user: AuthenticatedUser) -> Barrel:
		barrel = await self._barrels.find_typed(fez_id, BarrelType.FRIENDLY_FEZ)
		policy.ensure_owner(barrel, auth_user.id)
		return barrel

	async def _require_user(self, user_id: str) -> UserHeader:
		header = await self._users.get_user(user_id)
		if header is None:
			raise TargetNotFound()
		return header
