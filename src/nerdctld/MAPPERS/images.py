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
Mapping of nerdctl image records to Docker image documents.
"""
from typing import Any, Dict, List, Optional

from ..MODELS.images import DeleteItem, HistoryItem, ImageInspect, ImageSummary
from ..MODELS.records import ContainerRecord, HistoryRecord, ImageRecord
from ..PARSERS.conversions import byte_size, unix_natural, unix_time
from ..PARSERS.output_parser import build_record, drop_nulls
from ..UTILS.image_reference import same_image

DANGLING = "<none>"


def repo_tag(record: ImageRecord) -> str:
    """``repo:tag`` of a listing line, ``<none>:<none>`` for dangling images."""
    if record.repository == DANGLING:
        return f"{DANGLING}:{DANGLING}"
    return f"{record.repository}:{record.tag}"


def repo_digest(record: ImageRecord) -> Optional[str]:
    if not record.digest:
        return None
    return f"{record.repository}@{record.digest}"


def count_containers(reference: str, containers: List[ContainerRecord]) -> int:
    return sum(1 for c in containers if same_image(c.image, reference))


def map_image_list(records: List[ImageRecord],
                   containers: Optional[List[ContainerRecord]] = None) -> List[ImageSummary]:
    """
    Builds the ``GET /images/json`` listing.

    nerdctl prints one line per name; lines sharing an image ID are merged
    into a single summary carrying every tag and digest, in listing order.

    :param records: Parsed ``nerdctl images`` lines.
    :param containers: Container listing used to fill ``Containers``; the
        field is -1 (not computed) when omitted.
    """
    summaries: Dict[str, ImageSummary] = {}
    for record in records:
        summary = summaries.get(record.id)
        if summary is None:
            size = byte_size(record.size)
            summary = ImageSummary(
                id=record.id,
                created=unix_time(record.created_at),
                size=size,
                virtual_size=size,
                containers=-1 if containers is None else 0,
            )
            summaries[record.id] = summary
        tag = repo_tag(record)
        if tag not in summary.repo_tags:
            summary.repo_tags.append(tag)
            if containers is not None and record.repository != DANGLING:
                summary.containers += count_containers(tag, containers)
        digest = repo_digest(record)
        if digest and digest not in summary.repo_digests:
            summary.repo_digests.append(digest)
    return list(summaries.values())


def map_image_inspect(data: Dict[str, Any]) -> ImageInspect:
    """
    Builds ``GET /images/{name}/json`` from ``nerdctl image inspect`` output,
    which already follows Docker's layout.
    """
    image = build_record(ImageInspect, drop_nulls(data))
    if image.virtual_size is None:
        image.virtual_size = image.size
    return image


def map_image_history(records: List[HistoryRecord], now: Optional[float] = None) -> List[HistoryItem]:
    items = []
    for record in records:
        if record.created_at:
            created = unix_time(record.created_at)
        elif record.created_since:
            created = unix_natural(record.created_since, now)
        else:
            created = 0
        items.append(HistoryItem(
            id=record.snapshot or "<missing>",
            created=created,
            created_by=record.created_by,
            size=byte_size(record.size) if record.size else 0,
            comment=record.comment,
        ))
    return items


def map_image_delete(items: List[Dict[str, str]]) -> List[DeleteItem]:
    return [DeleteItem(untagged=item.get("Untagged"), deleted=item.get("Deleted"))
            for item in items]
