import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from fezhub.domain.barrels import repository as barrel_repository
from fezhub.domain.fez import posts as fez_posts
from fezhub.domain.users import UserCache, UserHeader
from fezhub.infra import postgres
from fezhub.main import app
from fezhub.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from fezhub.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest_asyncio.fixture(autouse=True)
async def reset_stores():
	await barrel_repository.reset_memory_state()
	await fez_posts.reset_memory_state()
	yield


@pytest.fixture(autouse=True)
def force_test_settings(tmp_path):
	"""Dev mode so API tests can authenticate with X-User-Id headers."""
	original_env = settings.environment
	original_root = settings.image_root
	settings.environment = "dev"
	settings.image_root = str(tmp_path / "images")
	try:
		yield
	finally:
		settings.environment = original_env
		settings.image_root = original_root


@pytest_asyncio.fixture
async def users(fake_redis):
	"""Seed the user cache with a handful of known users."""
	cache = UserCache()
	for user_id in ("alice", "bob", "carol", "dave", "erin"):
		await cache.put_user(UserHeader(user_id=user_id, username=user_id.capitalize()))
	return cache


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
