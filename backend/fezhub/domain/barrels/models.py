"""Domain models for barrels: owned, typed containers of ids and string tags."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Union

from fezhub.domain.barrels.exceptions import InvariantViolation

UserInfo = Dict[str, List[str]]


class BarrelType(str, Enum):
	"""What a barrel holds. Fixed at creation."""

	FRIENDLY_FEZ = "friendlyFez"
	BOOKMARKED_POST = "bookmarkedPost"
	BOOKMARKED_TWARRT = "bookmarkedTwarrt"
	KEYWORD_ALERT = "keywordAlert"
	KEYWORD_MUTE = "keywordMute"
	SEAMONKEY = "seamonkey"
	TAGGED_EVENT = "taggedEvent"
	TAGGED_FORUM = "taggedForum"
	USER_BLOCK = "userBlock"
	USER_MUTE = "userMute"
	USER_WORDS = "userWords"

	@property
	def sort_order(self) -> int:
		return _SORT_ORDER.get(self, 20)

	def __lt__(self, other: object) -> bool:
		if not isinstance(other, BarrelType):
			return NotImplemented
		return self.sort_order < other.sort_order


_SORT_ORDER = {
	BarrelType.USER_BLOCK: 0,
	BarrelType.USER_MUTE: 1,
	BarrelType.KEYWORD_ALERT: 2,
	BarrelType.KEYWORD_MUTE: 3,
	BarrelType.USER_WORDS: 10,
}

BOOKMARK_TYPES = frozenset({BarrelType.BOOKMARKED_POST, BarrelType.BOOKMARKED_TWARRT})
WORD_TYPES = frozenset({BarrelType.KEYWORD_ALERT, BarrelType.KEYWORD_MUTE, BarrelType.USER_WORDS})

BOOKMARKS_KEY = "bookmarks"
WORDS_KEY = "words"


def first_value(user_info: UserInfo, key: str, default: str = "") -> str:
	values = user_info.get(key) or []
	return values[0] if values else default


def parse_capacity(user_info: UserInfo, key: str = "maxCapacity") -> int:
	"""Read a capacity attribute, which must be a non-negative integer."""
	raw = first_value(user_info, key, default="")
	try:
		value = int(raw)
	except ValueError as exc:
		raise InvariantViolation(f"{key}_not_found") from exc
	if value < 0:
		raise InvariantViolation(f"{key}_negative")
	return value


@dataclass(slots=True)
class FezInfo:
	"""Typed payload of a ``friendlyFez`` barrel."""

	fez_type: str
	info: str
	start_time: str
	end_time: str
	location: str
	min_capacity: int
	max_capacity: int

	def to_user_info(self) -> UserInfo:
		return {
			"fezType": [self.fez_type],
			"info": [self.info],
			"startTime": [self.start_time],
			"endTime": [self.end_time],
			"location": [self.location],
			"minCapacity": [str(self.min_capacity)],
			"maxCapacity": [str(self.max_capacity)],
		}

	@classmethod
	def from_user_info(cls, user_info: UserInfo) -> "FezInfo":
		try:
			min_capacity = int(first_value(user_info, "minCapacity", default="0"))
		except ValueError:
			min_capacity = 0
		return cls(
			fez_type=first_value(user_info, "fezType"),
			info=first_value(user_info, "info"),
			start_time=first_value(user_info, "startTime"),
			end_time=first_value(user_info, "endTime"),
			location=first_value(user_info, "location"),
			min_capacity=min_capacity,
			max_capacity=parse_capacity(user_info),
		)


@dataclass(slots=True)
class StringSet:
	"""Typed payload of bookmark and keyword barrels: an ordered set of strings."""

	key: str
	values: List[str] = field(default_factory=list)

	def to_user_info(self) -> UserInfo:
		return {self.key: list(self.values)}

	@classmethod
	def from_user_info(cls, key: str, user_info: UserInfo) -> "StringSet":
		return cls(key=key, values=list(user_info.get(key) or []))


BarrelPayload = Union[FezInfo, StringSet, None]


@dataclass(slots=True)
class Barrel:
	"""Persisted representation of a barrel."""

	id: str
	owner_id: str
	barrel_type: BarrelType
	name: str
	model_ids: List[str]
	user_info: UserInfo
	version: int
	created_at: datetime
	updated_at: datetime

	def has_member(self, member_id: str) -> bool:
		return member_id in self.model_ids

	def payload(self) -> BarrelPayload:
		"""Decode ``user_info`` into the typed payload for this barrel's category."""
		if self.barrel_type == BarrelType.FRIENDLY_FEZ:
			return FezInfo.from_user_info(self.user_info)
		if self.barrel_type in BOOKMARK_TYPES:
			return StringSet.from_user_info(BOOKMARKS_KEY, self.user_info)
		if self.barrel_type in WORD_TYPES:
			return StringSet.from_user_info(WORDS_KEY, self.user_info)
		return None

	def clone(self) -> "Barrel":
		return replace(
			self,
			model_ids=list(self.model_ids),
			user_info={key: list(values) for key, values in self.user_info.items()},
		)


def barrel_summary(barrel: Barrel) -> dict:
	return {
		"barrel_id": barrel.id,
		"owner_id": barrel.owner_id,
		"barrel_type": barrel.barrel_type.value,
		"barrel_name": barrel.name,
		"members": len(barrel.model_ids),
		"version": barrel.version,
	}
