"""Domain models for fezzes: activity types, member views and discussion posts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from fezhub.settings import settings


class FezType(str, Enum):
	ACTIVITY = "activity"
	DINING = "dining"
	GAMING = "gaming"
	MEETUP = "meetup"
	MUSIC = "music"
	OTHER = "other"
	SHORE = "shore"

	@property
	def label(self) -> str:
		return _LABELS[self]

	@classmethod
	def _missing_(cls, value: object) -> Optional["FezType"]:
		# accept labels and any casing
		if isinstance(value, str):
			lowered = value.strip().lower()
			for member in cls:
				if lowered in (member.value, member.label.lower()):
					return member
		return None


_LABELS = {
	FezType.ACTIVITY: "Activity",
	FezType.DINING: "Dining",
	FezType.GAMING: "Gaming",
	FezType.MEETUP: "Meetup",
	FezType.MUSIC: "Music",
	FezType.OTHER: "Other",
	FezType.SHORE: "Shore",
}


@dataclass(frozen=True, slots=True)
class SeaMonkey:
	"""A member slot as shown to one requester."""

	user_id: str
	username: str

	def is_sentinel(self) -> bool:
		return self.user_id == settings.friendly_fez_id


AVAILABLE = SeaMonkey(user_id=settings.friendly_fez_id, username="AvailableSlot")
BLOCKED = SeaMonkey(user_id=settings.friendly_fez_id, username="BlockedUser")


@dataclass(slots=True)
class FezPost:
	id: str
	fez_id: str
	author_id: str
	text: str
	image: Optional[str]
	created_at: datetime
