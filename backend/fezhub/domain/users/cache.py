"""Redis-backed cache of user headers and block/mute relationships."""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from fezhub.domain.users.models import UserHeader
from fezhub.infra.redis import redis_client


def _header_key(user_id: str) -> str:
	return f"user:header:{user_id}"


def _blocks_key(user_id: str) -> str:
	return f"user:blocks:{user_id}"


def _mutes_key(user_id: str) -> str:
	return f"user:mutes:{user_id}"


class UserCache:
	"""Read-through view of user identity and relationship sets.

	Blocks are symmetric: blocking a user also hides the blocker from them, so
	``get_blocks`` returns everyone on either side of a block. Mutes are one-way.
	"""

	async def put_user(self, header: UserHeader) -> None:
		await redis_client.hset(_header_key(header.user_id), mapping=header.to_mapping())

	async def get_user(self, user_id: str) -> Optional[UserHeader]:
		data = await redis_client.hgetall(_header_key(str(user_id)))
		if not data:
			return None
		return UserHeader.from_mapping(data)

	async def get_headers(self, user_ids: Iterable[str]) -> List[UserHeader]:
		"""Return headers in the order requested, dropping unknown ids."""
		ids = [str(uid) for uid in user_ids]
		if not ids:
			return []
		async with redis_client.pipeline(transaction=False) as pipe:
			for uid in ids:
				pipe.hgetall(_header_key(uid))
			rows = await pipe.execute()
		return [UserHeader.from_mapping(row) for row in rows if row]

	async def get_blocks(self, user_id: str) -> Set[str]:
		return set(await redis_client.smembers(_blocks_key(str(user_id))))

	async def get_mutes(self, user_id: str) -> Set[str]:
		return set(await redis_client.smembers(_mutes_key(str(user_id))))

	async def block(self, user_id: str, target_id: str) -> None:
		async with redis_client.pipeline(transaction=True) as pipe:
			pipe.sadd(_blocks_key(user_id), target_id)
			pipe.sadd(_blocks_key(target_id), user_id)
			await pipe.execute()

	async def unblock(self, user_id: str, target_id: str) -> None:
		async with redis_client.pipeline(transaction=True) as pipe:
			pipe.srem(_blocks_key(user_id), target_id)
			pipe.srem(_blocks_key(target_id), user_id)
			await pipe.execute()

	async def mute(self, user_id: str, target_id: str) -> None:
		await redis_client.sadd(_mutes_key(user_id), target_id)

	async def unmute(self, user_id: str, target_id: str) -> None:
		await redis_client.srem(_mutes_key(user_id), target_id)
