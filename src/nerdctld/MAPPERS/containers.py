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
Mapping of nerdctl container records to Docker container documents.
"""
from typing import Any, Dict, List

from ..MODELS.containers import ContainerInspect, ContainerSummary, Port, container_state
from ..MODELS.records import ContainerRecord
from ..PARSERS.conversions import container_size, unix_time
from ..PARSERS.output_parser import build_record, drop_nulls


def parse_ports(text: str) -> List[Port]:
    """
    Parses the ``Ports`` column, e.g. ``0.0.0.0:8080->80/tcp, 443/tcp``.
    Entries that are not port mappings are skipped.
    """
    ports = []
    for entry in text.split(","):
        entry = entry.strip()
        if not entry:
            continue
        host, arrow, container = entry.rpartition("->")
        if not arrow:
            container = entry
        number, _, proto = container.partition("/")
        if not number.isdigit():
            continue
        port = Port(private_port=int(number), type=proto or "tcp")
        if host:
            ip, _, public = host.rpartition(":")
            if public.isdigit():
                port.public_port = int(public)
                port.ip = ip or None
        ports.append(port)
    return ports


def map_container(record: ContainerRecord, size: bool = False) -> ContainerSummary:
    summary = ContainerSummary(
        id=record.id,
        names=["/" + name.lstrip("/") for name in record.names],
        image=record.image,
        command=record.command.strip('"'),
        created=unix_time(record.created_at),
        ports=parse_ports(record.ports),
        labels=record.labels,
        state=container_state(record.status),
        status=record.status,
    )
    if size:
        summary.size_rw, summary.size_root_fs = container_size(record.size)
    return summary


def map_container_list(records: List[ContainerRecord], size: bool = False) -> List[ContainerSummary]:
    """
    Builds the ``GET /containers/json`` listing.

    :param records: Parsed ``nerdctl ps`` lines.
    :param size: Whether the listing was requested with ``size=1``.
    """
    return [map_container(record, size) for record in records]


def map_container_inspect(data: Dict[str, Any]) -> ContainerInspect:
    container = build_record(ContainerInspect, drop_nulls(data))
    if container.name and not container.name.startswith("/"):
        container.name = "/" + container.name
    return container
