"""
Models for the container endpoints.
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import Field

from .docker_model import DockerModel

class StatusCategory(str, Enum):
    """
    Coarse container state derived from nerdctl's human readable status.
    """
    RUNNING = "Running"
    PAUSED = "Paused"
    STOPPED = "Stopped"
    CREATED = "Created"

    @classmethod
    def from_status(cls, status: str) -> "StatusCategory":
        """
        Classifies a status string such as ``Up 3 minutes`` or
        ``Exited (0) 2 hours ago``.
        """
        if status.startswith("Up"):
            return cls.RUNNING
        if status.startswith("Paused"):
            return cls.PAUSED
        if status.startswith("Created"):
            return cls.CREATED
        # Exited, Restarting, Removing, Dead and unknown values
        return cls.STOPPED


def container_state(status: str) -> str:
    """
    The ``State`` field of a container summary: ``running`` iff the status
    starts with ``Up``, otherwise the lower-cased first word of the status.
    """
    if status.startswith("Up"):
        return "running"
    word = status.split(" ", 1)[0].lower()
    return word or "exited"


class Port(DockerModel):
    ip: Optional[str] = Field(default=None, alias="IP")
    private_port: int = 0
    public_port: Optional[int] = None
    type: str = "tcp"


class HostConfigSummary(DockerModel):
    network_mode: Optional[str] = None


class ContainerSummary(DockerModel):
    """
    An element of ``GET /containers/json``.
    """
    id: str
    names: List[str] = []
    image: str = ""
    image_id: str = Field(default="", alias="ImageID")
    command: str = ""
    created: int = 0
    ports: List[Port] = []
    size_rw: Optional[int] = None
    size_root_fs: Optional[int] = None
    labels: Dict[str, str] = {}
    state: str = ""
    status: str = ""
    host_config: HostConfigSummary = Field(default_factory=HostConfigSummary)
    mounts: List[Dict[str, Any]] = []

    @property
    def category(self) -> StatusCategory:
        return StatusCategory.from_status(self.status)


class ContainerState(DockerModel):
    status: str = ""
    running: bool = False
    paused: bool = False
    restarting: bool = False
    oom_killed: bool = Field(default=False, alias="OOMKilled")
    dead: bool = False
    pid: int = 0
    exit_code: int = 0
    error: str = ""
    started_at: str = ""
    finished_at: str = ""


class ContainerInspect(DockerModel):
    """
    Body of ``GET /containers/{name}/json``.
    """
    id: str
    created: str = ""
    path: str = ""
    args: List[str] = []
    state: ContainerState = Field(default_factory=ContainerState)
    image: str = ""
    resolv_conf_path: str = ""
    hostname_path: str = ""
    hosts_path: str = ""
    log_path: str = ""
    name: str = ""
    restart_count: int = 0
    driver: str = ""
    platform: str = ""
    app_armor_profile: str = ""
    mounts: List[Dict[str, Any]] = []
    config: Optional[Dict[str, Any]] = None
    network_settings: Optional[Dict[str, Any]] = None
