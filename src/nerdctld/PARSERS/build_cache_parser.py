"""
Parser for the text reports of ``buildctl du --verbose`` and
``buildctl prune --verbose``.

Each cache record is a block of ``Key:<tabs>value`` lines starting with
``ID:``. The report ends with a summary block holding ``Total:``::

    ID:             3o6oyzst1nj2kwgjdrnfrr4c3
    Created at:     2024-03-01 12:00:00.51 +0000 UTC
    Mutable:        false
    Reclaimable:    true
    Shared:         false
    Size:           4.10KB
    Description:    local source for context
    Usage count:    1
    Last used:      3 hours ago
    Type:           source.local

    Shared:         0B
    Private:        4.10KB
    Reclaimable:    4.10KB
    Total:          4.10KB
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .conversions import cache_size


@dataclass
class CacheRecord:
    """One build cache entry."""

    id: str
    parents: List[str] = field(default_factory=list)
    created_at: Optional[str] = None
    mutable: bool = False
    reclaimable: bool = False
    shared: bool = False
    size: int = 0
    description: str = ""
    usage_count: int = 0
    last_used: Optional[str] = None
    type: str = ""


@dataclass
class CacheSummary:
    """Totals printed after the records."""

    shared: int = 0
    private: int = 0
    reclaimable: int = 0
    total: int = 0


def _split_blocks(text: str) -> List[Dict[str, str]]:
    blocks = []
    current: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            if current:
                blocks.append(current)
                current = {}
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        # A new ID line always starts a new record, blank separator or not
        if key == "ID" and current:
            blocks.append(current)
            current = {}
        if key == "Parent" or key == "Parents":
            current.setdefault("Parents", "")
            current["Parents"] = (current["Parents"] + " " + value.strip()).strip()
            continue
        current[key] = value.strip()
    if current:
        blocks.append(current)
    return blocks


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def parse_build_cache(text: str) -> Tuple[List[CacheRecord], Optional[CacheSummary]]:
    """
    Parses a verbose buildctl disk usage or prune report.

    :param text: Raw stdout of buildctl.
    :return: The cache records and the summary block, if one was printed.
    :raises OutputParseError: If a size field is malformed.
    """
    records = []
    summary = None
    for block in _split_blocks(text):
        if "ID" in block:
            usage = block.get("Usage count", "0")
            records.append(CacheRecord(
                id=block["ID"],
                parents=block.get("Parents", "").split(),
                created_at=block.get("Created at") or None,
                mutable=_flag(block.get("Mutable")),
                reclaimable=_flag(block.get("Reclaimable")),
                shared=_flag(block.get("Shared")),
                size=cache_size(block.get("Size", "0B")),
                description=block.get("Description", ""),
                usage_count=int(usage) if usage.isdigit() else 0,
                last_used=block.get("Last used") or None,
                type=block.get("Type", ""),
            ))
        elif "Total" in block:
            summary = CacheSummary(
                shared=cache_size(block.get("Shared", "0B")),
                private=cache_size(block.get("Private", "0B")),
                reclaimable=cache_size(block.get("Reclaimable", "0B")),
                total=cache_size(block["Total"]),
            )
    return records, summary
