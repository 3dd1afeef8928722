# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Conversions of the human readable sizes and timestamps printed by nerdctl
and buildctl.
"""
import math
import re
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..exceptions import OutputParseError

BYTE_UNITS = {
    "B": 1,
    "KiB": 1024,
    "MiB": 1024 ** 2,
    "GiB": 1024 ** 3,
}

CACHE_MAGNITUDES = {
    "": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
}

RELATIVE_UNITS = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
    "month": 30 * 24 * 60 * 60,
    "year": 365 * 24 * 60 * 60,
}

_RELATIVE = re.compile(r'^(?:about\s+)?(an?|\d+)\s+(second|minute|hour|day|week|month|year)s?$')
_FRACTION = re.compile(r'^(\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2})\.\d+')


def byte_size(text: str) -> int:
    """
    Converts nerdctl sizes such as ``7.6 MiB`` to bytes.

    A bare number is taken as bytes. Units are 1024 based; SI units are not
    accepted.

    :param text: The size string.
    :return: The size in bytes.
    :raises OutputParseError: If the string is not a size.
    """
    words = text.split()
    if not words or len(words) > 2:
        raise OutputParseError(f"invalid size {text!r}")
    try:
        number = float(words[0])
    except ValueError:
        raise OutputParseError(f"invalid size {text!r}") from None
    unit = words[1] if len(words) == 2 else "B"
    if unit not in BYTE_UNITS:
        raise OutputParseError(f"unknown size unit {unit!r} in {text!r}")
    size = number * BYTE_UNITS[unit]
    if not math.isfinite(size):
        raise OutputParseError(f"invalid size {text!r}")
    return int(size)


def cache_size(text: str) -> int:
    """
    Converts buildctl sizes such as ``12.3MB`` or ``0B`` to bytes (1024 based).

    :param text: The size string.
    :return: The size in bytes.
    :raises OutputParseError: If the string is not a size.
    """
    value = text.strip()
    if not value.endswith("B"):
        raise OutputParseError(f"invalid cache size {text!r}")
    value = value[:-1].rstrip("i")
    magnitude = ""
    if value and value[-1].upper() in CACHE_MAGNITUDES:
        magnitude = value[-1].upper()
        value = value[:-1]
    try:
        return int(float(value) * CACHE_MAGNITUDES[magnitude])
    except (ValueError, OverflowError):
        raise OutputParseError(f"invalid cache size {text!r}") from None


def parse_timestamp(text: str) -> datetime:
    """
    Parses an absolute timestamp in either of the layouts nerdctl prints:
    ``2024-03-01T12:00:00Z`` or ``2024-03-01 12:00:00 +0000 UTC``.

    :raises OutputParseError: If neither layout matches.
    """
    value = _FRACTION.sub(r'\1', text.strip())
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    except ValueError:
        pass
    # The trailing zone abbreviation is informative only; the offset is authoritative.
    parts = value.split(" ")
    if len(parts) >= 3:
        try:
            return datetime.strptime(" ".join(parts[:3]), "%Y-%m-%d %H:%M:%S %z")
        except ValueError:
            pass
    raise OutputParseError(f"invalid timestamp {text!r}")


def unix_time(text: str) -> int:
    """
    Converts an absolute timestamp to seconds since the epoch.
    """
    return int(parse_timestamp(text).timestamp())


def unix_natural(text: str, now: Optional[float] = None) -> int:
    """
    Converts a relative phrase such as ``3 hours ago``, ``About a minute ago``
    or ``Less than a second ago`` to seconds since the epoch.

    :param text: The relative phrase.
    :param now: Reference time, the current time by default.
    :return: The absolute time in seconds.
    :raises OutputParseError: If the phrase is not understood.
    """
    if now is None:
        now = time.time()
    phrase = text.strip().lower()
    if phrase.endswith(" ago"):
        phrase = phrase[:-len(" ago")]
    if phrase in ("now", "less than a second", "just now"):
        return int(now)
    match = _RELATIVE.match(phrase)
    if not match:
        raise OutputParseError(f"invalid relative time {text!r}")
    count, unit = match.groups()
    amount = 1 if count in ("a", "an") else int(count)
    return int(now - amount * RELATIVE_UNITS[unit])


def rfc3339(seconds: int) -> str:
    """Formats epoch seconds the way Docker prints timestamps."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def container_size(text: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Splits ``nerdctl ps --size`` output such as ``4.0 KiB (virtual 7.6 MiB)``
    into the writable layer size and the total size.
    """
    if not text.strip():
        return None, None
    rw_part, _, virtual_part = text.partition("(virtual")
    rw = byte_size(rw_part.strip())
    total = byte_size(virtual_part.rstrip(") ").strip()) if virtual_part else None
    return rw, total
