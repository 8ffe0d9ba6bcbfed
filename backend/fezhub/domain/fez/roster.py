"""Pure roster transforms: visibility masking and capacity/waitlist resolution.

Both preserve join order. Masking runs first, so a blocked member still
occupies a slot exactly like any other member.
"""

from __future__ import annotations

from typing import AbstractSet, List, Sequence, Tuple

from fezhub.domain.barrels.exceptions import InvariantViolation
from fezhub.domain.fez.models import AVAILABLE, BLOCKED, SeaMonkey
from fezhub.domain.users.models import UserHeader


def mask(members: Sequence[UserHeader], blocks: AbstractSet[str]) -> List[SeaMonkey]:
	"""Replace members in ``blocks`` with the Blocked placeholder."""
	return [
		BLOCKED if member.user_id in blocks else SeaMonkey(user_id=member.user_id, username=member.username)
		for member in members
	]


def resolve(members: Sequence[SeaMonkey], max_capacity: int) -> Tuple[List[SeaMonkey], List[SeaMonkey]]:
	"""Split members into (active, waiting) by join order.

	A capacity of 0 means unlimited. Open slots below capacity are padded
	with the Available placeholder.
	"""
	if max_capacity < 0:
		raise InvariantViolation("maxCapacity_negative")
	count = len(members)
	if max_capacity == 0:
		return list(members), []
	if count < max_capacity:
		return list(members) + [AVAILABLE] * (max_capacity - count), []
	if count > max_capacity:
		return list(members[:max_capacity]), list(members[max_capacity:])
	return list(members), []
