"""
Mapping of buildctl cache reports to Docker build cache documents.
"""
from typing import List, Optional

from ..MODELS.system import BuildCacheEntry, BuildPruneReport
from ..PARSERS.build_cache_parser import CacheRecord, CacheSummary
from ..PARSERS.conversions import rfc3339, unix_natural, unix_time

# Records BuildKit keeps for itself, not reported as deleted
HIDDEN_CACHE_TYPES = ("internal", "frontend")


def map_cache_record(record: CacheRecord, now: Optional[float] = None) -> BuildCacheEntry:
    last_used = None
    if record.last_used:
        last_used = rfc3339(unix_natural(record.last_used, now))
    return BuildCacheEntry(
        id=record.id,
        parent=record.parents[0] if record.parents else None,
        type=record.type,
        description=record.description,
        in_use=not record.reclaimable,
        shared=record.shared,
        size=record.size,
        created_at=rfc3339(unix_time(record.created_at)) if record.created_at else "",
        last_used_at=last_used,
        usage_count=record.usage_count,
    )


def map_build_cache(records: List[CacheRecord], now: Optional[float] = None) -> List[BuildCacheEntry]:
    return [map_cache_record(record, now) for record in records]


def map_build_prune(records: List[CacheRecord], summary: Optional[CacheSummary]) -> BuildPruneReport:
    """
    Builds ``POST /build/prune`` from ``buildctl prune --verbose``.

    ``SpaceReclaimed`` is the printed total, or the sum of the reported
    records when buildctl printed no summary.
    """
    deleted = [r for r in records if r.type not in HIDDEN_CACHE_TYPES]
    if summary is not None:
        reclaimed = summary.total
    else:
        reclaimed = sum(r.size for r in deleted)
    return BuildPruneReport(caches_deleted=[r.id for r in deleted], space_reclaimed=reclaimed)
