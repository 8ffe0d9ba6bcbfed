"""Barrel persistence: asyncpg when a pool is reachable, in-process otherwise."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import asyncpg
import ulid

from fezhub.domain.barrels import models
from fezhub.domain.barrels.exceptions import Conflict, NotFound
from fezhub.infra.postgres import get_pool

_SCHEMA = """
CREATE TABLE IF NOT EXISTS barrels (
	id TEXT PRIMARY KEY,
	owner_id TEXT NOT NULL,
	barrel_type TEXT NOT NULL,
	name TEXT NOT NULL,
	model_ids TEXT[] NOT NULL DEFAULT '{}',
	user_info JSONB NOT NULL DEFAULT '{}'::jsonb,
	version INTEGER NOT NULL DEFAULT 1,
	created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
	updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS barrels_type_owner_idx ON barrels (barrel_type, owner_id);
"""


class _MemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.barrels: Dict[str, models.Barrel] = {}

	async def insert(self, barrel: models.Barrel) -> None:
		async with self._lock:
			self.barrels[barrel.id] = barrel.clone()

	async def get(self, barrel_id: str) -> Optional[models.Barrel]:
		async with self._lock:
			barrel = self.barrels.get(barrel_id)
			return barrel.clone() if barrel else None

	async def update(self, barrel: models.Barrel, now: datetime) -> int:
		async with self._lock:
			stored = self.barrels.get(barrel.id)
			if stored is None:
				raise NotFound("barrel_not_found")
			if stored.version != barrel.version:
				raise Conflict()
			updated = barrel.clone()
			updated.version = stored.version + 1
			updated.updated_at = now
			self.barrels[barrel.id] = updated
			return updated.version

	async def delete(self, barrel_id: str) -> bool:
		async with self._lock:
			return self.barrels.pop(barrel_id, None) is not None

	async def select(
		self,
		*,
		barrel_type: models.BarrelType,
		owner_id: Optional[str] = None,
		member_id: Optional[str] = None,
		excluding_owners: Iterable[str] = (),
	) -> List[models.Barrel]:
		excluded = set(excluding_owners)
		async with self._lock:
			result = [
				barrel.clone()
				for barrel in self.barrels.values()
				if barrel.barrel_type == barrel_type
				and (owner_id is None or barrel.owner_id == owner_id)
				and (member_id is None or member_id in barrel.model_ids)
				and barrel.owner_id not in excluded
			]
		result.sort(key=lambda b: b.created_at)
		return result


_MEMORY = _MemoryStore()


class BarrelRepository:
	def __init__(self) -> None:
		self._pool_checked = False
		self._pool_instance: Optional[asyncpg.Pool] = None
		self._schema_ready = False

	async def _get_pool(self) -> Optional[asyncpg.Pool]:
		if self._pool_checked:
			return self._pool_instance
		self._pool_checked = True
		try:
			pool = await get_pool()
		except (AssertionError, OSError, asyncio.TimeoutError, asyncpg.PostgresError):
			pool = None
		self._pool_instance = pool
		return pool

	async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
		if self._schema_ready:
			return
		await conn.execute(_SCHEMA)
		self._schema_ready = True

	async def create(
		self,
		*,
		owner_id: str,
		barrel_type: models.BarrelType,
		name: str,
		model_ids: List[str],
		user_info: models.UserInfo,
	) -> models.Barrel:
		now = datetime.now(timezone.utc)
		barrel = models.Barrel(
			id=str(ulid.new()),
			owner_id=owner_id,
			barrel_type=barrel_type,
			name=name,
			model_ids=list(model_ids),
			user_info={key: list(values) for key, values in user_info.items()},
			version=1,
			created_at=now,
			updated_at=now,
		)
		pool = await self._get_pool()
		if pool is None:
			await _MEMORY.insert(barrel)
			return barrel
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			await conn.execute(
				"""
				INSERT INTO barrels (id, owner_id, barrel_type, name, model_ids, user_info, version, created_at, updated_at)
				VALUES ($1,$2,$3,$4,$5,$6::jsonb,1,$7,$7)
				""",
				barrel.id,
				owner_id,
				barrel_type.value,
				name,
				barrel.model_ids,
				json.dumps(barrel.user_info),
				now,
			)
		return barrel

	async def get(self, barrel_id: str) -> Optional[models.Barrel]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get(barrel_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			row = await conn.fetchrow("SELECT * FROM barrels WHERE id=$1", barrel_id)
			return _row_to_barrel(row) if row else None

	async def save(self, barrel: models.Barrel) -> None:
		"""Persist ``barrel`` if nobody saved it since it was loaded.

		On success ``barrel.version`` and ``barrel.updated_at`` are advanced in place.
		"""
		now = datetime.now(timezone.utc)
		pool = await self._get_pool()
		if pool is None:
			barrel.version = await _MEMORY.update(barrel, now)
			barrel.updated_at = now
			return
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			row = await conn.fetchrow(
				"""
				UPDATE barrels
				SET name=$2, model_ids=$3, user_info=$4::jsonb, version=version+1, updated_at=$6
				WHERE id=$1 AND version=$5
				RETURNING version
				""",
				barrel.id,
				barrel.name,
				barrel.model_ids,
				json.dumps(barrel.user_info),
				barrel.version,
				now,
			)
			if row is None:
				exists = await conn.fetchval("SELECT 1 FROM barrels WHERE id=$1", barrel.id)
				if not exists:
					raise NotFound("barrel_not_found")
				raise Conflict()
		barrel.version = int(row["version"])
		barrel.updated_at = now

	async def delete(self, barrel_id: str) -> bool:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.delete(barrel_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			status = await conn.execute("DELETE FROM barrels WHERE id=$1", barrel_id)
			return status.endswith(" 1")

	async def list_by_type(
		self,
		barrel_type: models.BarrelType,
		*,
		excluding_owners: Iterable[str] = (),
	) -> List[models.Barrel]:
		excluded = list(excluding_owners)
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.select(barrel_type=barrel_type, excluding_owners=excluded)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			rows = await conn.fetch(
				"""
				SELECT * FROM barrels
				WHERE barrel_type=$1 AND NOT (owner_id = ANY($2::text[]))
				ORDER BY created_at
				""",
				barrel_type.value,
				excluded,
			)
			return [_row_to_barrel(row) for row in rows]

	async def list_by_owner(self, owner_id: str, barrel_type: models.BarrelType) -> List[models.Barrel]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.select(barrel_type=barrel_type, owner_id=owner_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			rows = await conn.fetch(
				"SELECT * FROM barrels WHERE barrel_type=$1 AND owner_id=$2 ORDER BY created_at",
				barrel_type.value,
				owner_id,
			)
			return [_row_to_barrel(row) for row in rows]

	async def list_by_member(self, barrel_type: models.BarrelType, member_id: str) -> List[models.Barrel]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.select(barrel_type=barrel_type, member_id=member_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			rows = await conn.fetch(
				"SELECT * FROM barrels WHERE barrel_type=$1 AND $2 = ANY(model_ids) ORDER BY created_at",
				barrel_type.value,
				member_id,
			)
			return [_row_to_barrel(row) for row in rows]


def _row_to_barrel(row: asyncpg.Record) -> models.Barrel:
	user_info = row["user_info"]
	if isinstance(user_info, str):
		user_info = json.loads(user_info)
	return models.Barrel(
		id=str(row["id"]),
		owner_id=str(row["owner_id"]),
		barrel_type=models.BarrelType(row["barrel_type"]),
		name=row["name"],
		model_ids=[str(mid) for mid in row["model_ids"] or []],
		user_info={str(key): [str(v) for v in values] for key, values in (user_info or {}).items()},
		version=int(row["version"]),
		created_at=row["created_at"],
		updated_at=row["updated_at"],
	)


async def reset_memory_state() -> None:
	"""Test helper to clear in-memory store state."""
	async with _MEMORY._lock:  # type: ignore[attr-defined]
		_MEMORY.barrels.clear()
