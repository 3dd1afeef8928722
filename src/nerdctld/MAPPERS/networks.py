"""
Mapping of nerdctl network records to Docker network documents.

Networks other than ``host`` and ``none`` are CNI managed and have no Docker
driver name.
"""
from typing import Any, Dict, List

from ..MODELS.networks import IPAM, IPAMConfig, Network, RESERVED_NETWORK_DRIVERS
from ..MODELS.records import NetworkRecord
from ..PARSERS.output_parser import build_record, drop_nulls


def map_ipam(data: Dict[str, Any]) -> IPAM:
    ipam = IPAM(driver=data.get("Driver") or "default", options=data.get("Options") or {})
    for config in data.get("Config") or []:
        ipam.config.append(IPAMConfig(
            subnet=config.get("Subnet"),
            gateway=config.get("Gateway"),
            ip_range=config.get("IPRange"),
        ))
    return ipam


def map_network(record: NetworkRecord) -> Network:
    return Network(
        name=record.name,
        id=record.id,
        driver=RESERVED_NETWORK_DRIVERS.get(record.name, ""),
        ipam=map_ipam(record.ipam),
        containers=record.containers,
        labels=record.labels,
    )


def map_network_list(records: List[NetworkRecord]) -> List[Network]:
    return [map_network(record) for record in records]


def map_network_inspect(data: Dict[str, Any]) -> Network:
    return map_network(build_record(NetworkRecord, drop_nulls(data)))
