"""Fez discussion post persistence."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import AbstractSet, Dict, List, Optional

import asyncpg
import ulid

from fezhub.domain.fez.models import FezPost
from fezhub.infra.postgres import get_pool

_SCHEMA = """
CREATE TABLE IF NOT EXISTS fez_posts (
	id TEXT PRIMARY KEY,
	fez_id TEXT NOT NULL,
	author_id TEXT NOT NULL,
	text TEXT NOT NULL,
	image TEXT NULL,
	created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS fez_posts_fez_created_idx ON fez_posts (fez_id, created_at);
"""


class _MemoryStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.posts: Dict[str, FezPost] = {}

	async def insert(self, post: FezPost) -> None:
		async with self._lock:
			self.posts[post.id] = post

	async def get(self, post_id: str) -> Optional[FezPost]:
		async with self._lock:
			return self.posts.get(post_id)

	async def delete(self, post_id: str) -> bool:
		async with self._lock:
			return self.posts.pop(post_id, None) is not None

	async def list_for_fez(self, fez_id: str, excluded: AbstractSet[str]) -> List[FezPost]:
		async with self._lock:
			posts = [p for p in self.posts.values() if p.fez_id == fez_id and p.author_id not in excluded]
		# dict order is insertion order, so equal timestamps keep posting order
		return sorted(posts, key=lambda p: p.created_at)


_MEMORY = _MemoryStore()


class FezPostRepository:
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
		if not self._schema_ready:
			await conn.execute(_SCHEMA)
			self._schema_ready = True

	async def create(self, *, fez_id: str, author_id: str, text: str, image: Optional[str]) -> FezPost:
		post = FezPost(
			id=str(ulid.new()),
			fez_id=fez_id,
			author_id=author_id,
			text=text,
			image=image,
			created_at=datetime.now(timezone.utc),
		)
		pool = await self._get_pool()
		if pool is None:
			await _MEMORY.insert(post)
			return post
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			await conn.execute(
				"INSERT INTO fez_posts (id, fez_id, author_id, text, image, created_at) VALUES ($1,$2,$3,$4,$5,$6)",
				post.id,
				post.fez_id,
				post.author_id,
				post.text,
				post.image,
				post.created_at,
			)
		return post

	async def get(self, post_id: str) -> Optional[FezPost]:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.get(post_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			row = await conn.fetchrow("SELECT * FROM fez_posts WHERE id=$1", post_id)
			return _row_to_post(row) if row else None

	async def delete(self, post_id: str) -> bool:
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.delete(post_id)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			status = await conn.execute("DELETE FROM fez_posts WHERE id=$1", post_id)
			return status.endswith(" 1")

	async def list_for_fez(self, fez_id: str, *, excluding_authors: AbstractSet[str] = frozenset()) -> List[FezPost]:
		"""Posts of one fez, oldest first, without posts by ``excluding_authors``."""
		pool = await self._get_pool()
		if pool is None:
			return await _MEMORY.list_for_fez(fez_id, excluding_authors)
		async with pool.acquire() as conn:
			await self._ensure_schema(conn)
			rows = await conn.fetch(
				"""
				SELECT * FROM fez_posts
				WHERE fez_id=$1 AND NOT (author_id = ANY($2::text[]))
				ORDER BY created_at ASC, id ASC
				""",
				fez_id,
				list(excluding_authors),
			)
			return [_row_to_post(row) for row in rows]


def _row_to_post(row: asyncpg.Record) -> FezPost:
	return FezPost(
		id=str(row["id"]),
		fez_id=str(row["fez_id"]),
		author_id=str(row["author_id"]),
		text=row["text"],
		image=row["image"],
		created_at=row["created_at"],
	)


async def reset_memory_state() -> None:
	"""Test helper to clear in-memory store state."""
	async with _MEMORY._lock:  # type: ignore[attr-defined]
		_MEMORY.posts.clear()
