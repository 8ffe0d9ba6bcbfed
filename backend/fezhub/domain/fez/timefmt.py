"""Parsing and display of fez start/end times.

Times are stored as strings: seconds since the epoch (``"1574364635"``), an
ISO-8601 timestamp, or ``""`` for "to be determined".
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

TBD = "TBD"


def date_from_parameter(value: str) -> Optional[datetime]:
	text = (value or "").strip()
	if not text:
		return None
	try:
		seconds = float(text)
	except ValueError:
		pass
	else:
		try:
			return datetime.fromtimestamp(seconds, tz=timezone.utc)
		except (OverflowError, OSError, ValueError):
			return None
	try:
		parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
	except ValueError:
		return None
	if parsed.tzinfo is None:
		parsed = parsed.replace(tzinfo=timezone.utc)
	return parsed


def fez_time_string(value: str) -> str:
	"""Render a stored time as e.g. ``"Thu, 7:30 PM"`` (UTC), or ``"TBD"``."""
	if value == "0":
		return TBD
	date = date_from_parameter(value)
	if date is None:
		return TBD
	date = date.astimezone(timezone.utc)
	hour = date.hour % 12 or 12
	meridiem = "AM" if date.hour < 12 else "PM"
	return f"{date:%a}, {hour}:{date:%M} {meridiem}"
