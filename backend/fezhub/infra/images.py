"""Image intake for user-supplied post images."""

from __future__ import annotations

import asyncio
import base64
import binascii
from enum import Enum
from pathlib import Path
from typing import Optional

import ulid

from fezhub.settings import settings


class ImageCategory(str, Enum):
	FEZ_POST = "fezpost"
	FORUM_POST = "forumpost"
	TWARRT = "twarrt"
	PROFILE = "profile"


class ImageError(ValueError):
	"""Raised when an uploaded image cannot be accepted."""

	def __init__(self, reason: str) -> None:
		super().__init__(reason)
		self.reason = reason


_SIGNATURES: tuple[tuple[bytes, str], ...] = (
	(b"\xff\xd8\xff", "jpg"),
	(b"\x89PNG\r\n\x1a\n", "png"),
	(b"GIF87a", "gif"),
	(b"GIF89a", "gif"),
)


def sniff_extension(data: bytes) -> str:
	for signature, ext in _SIGNATURES:
		if data.startswith(signature):
			return ext
	if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
		return "webp"
	raise ImageError("unsupported_format")


def decode_image_data(encoded: str) -> bytes:
	try:
		return base64.b64decode(encoded, validate=True)
	except (binascii.Error, ValueError) as exc:
		raise ImageError("invalid_encoding") from exc


def _write(path: Path, data: bytes) -> None:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_bytes(data)


async def process_image(
	data: Optional[bytes],
	category: ImageCategory,
	*,
	root: Optional[str] = None,
) -> Optional[str]:
	"""Validate and store image bytes, returning the stored filename.

	``None`` means no image was supplied and yields ``None``.
	"""
	if data is None:
		return None
	if not data:
		raise ImageError("empty_image")
	if len(data) > settings.image_max_bytes:
		raise ImageError("image_too_large")
	ext = sniff_extension(data)
	filename = f"{ulid.new()}.{ext}"
	target = Path(root or settings.image_root) / category.value / filename
	await asyncio.to_thread(_write, target, data)
	return filename
