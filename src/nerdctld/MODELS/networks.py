"""
Models for the network endpoints.
"""
from typing import Any, Dict, List, Optional
from pydantic import Field

from .docker_model import DockerModel

# Docker driver names of the networks nerdctl always provides. Every other
# network is a CNI bridge managed by nerdctl and reports no driver.
RESERVED_NETWORK_DRIVERS = {
    "host": "host",
    "none": "null",
}

class IPAMConfig(DockerModel):
    subnet: Optional[str] = None
    gateway: Optional[str] = None
    ip_range: Optional[str] = Field(default=None, alias="IPRange")


class IPAM(DockerModel):
    driver: str = "default"
    options: Dict[str, str] = {}
    config: List[IPAMConfig] = []


class Network(DockerModel):
    """
    A network as returned by ``GET /networks`` and ``GET /networks/{name}``.
    """
    name: str
    id: str = ""
    created: str = "0001-01-01T00:00:00Z"
    scope: str = "local"
    driver: str = ""
    enable_ipv6: bool = Field(default=False, alias="EnableIPv6")
    ipam: IPAM = Field(default_factory=IPAM, alias="IPAM")
    internal: bool = False
    attachable: bool = False
    ingress: bool = False
    containers: Dict[str, Any] = {}
    options: Dict[str, str] = {}
    labels: Dict[str, str] = {}
