"""
Mapping of nerdctl volume records to Docker volume documents.
"""
from typing import List

from ..MODELS.records import VolumeRecord
from ..MODELS.volumes import UsageData, Volume, VolumeList
from ..PARSERS.conversions import byte_size


def map_volume(record: VolumeRecord) -> Volume:
    usage = None
    if record.size:
        usage = UsageData(size=byte_size(record.size))
    return Volume(
        name=record.name,
        driver=record.driver or "local",
        mountpoint=record.mountpoint,
        created_at=record.created_at,
        labels=record.labels,
        scope=record.scope or "local",
        usage_data=usage,
    )


def map_volume_list(records: List[VolumeRecord]) -> VolumeList:
    return VolumeList(volumes=[map_volume(record) for record in records])


def map_volume_inspect(record: VolumeRecord) -> Volume:
    return map_volume(record)
