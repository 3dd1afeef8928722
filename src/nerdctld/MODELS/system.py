"""
Models for the /version, /info and /system/df responses.
"""
from typing import Dict, List, Optional
from pydantic import Field

from .docker_model import DockerModel
from .images import ImageSummary
from .containers import ContainerSummary
from .volumes import Volume

class ComponentVersion(DockerModel):
    """
    Version of one piece of the engine (nerdctl, containerd, buildkitd, ...).
    """
    name: str
    version: str
    details: Optional[Dict[str, str]] = None


class Platform(DockerModel):
    name: str = ""


class VersionResponse(DockerModel):
    """
    Body of ``GET /version``. ``Platform`` and ``Components`` only appear for
    API versions above 1.35.
    """
    platform: Optional[Platform] = None
    components: Optional[List[ComponentVersion]] = None
    version: str
    api_version: str
    min_api_version: Optional[str] = Field(default=None, alias="MinAPIVersion")
    git_commit: Optional[str] = None
    go_version: str = ""
    os: str = ""
    arch: str = ""
    kernel_version: Optional[str] = None
    experimental: Optional[bool] = None
    build_time: Optional[str] = None


class Commit(DockerModel):
    """Commit of an engine component as reported in /info."""
    id: str = Field(alias="ID")
    expected: str = ""


class Runtime(DockerModel):
    path: str = Field(alias="path")


class SwarmInfo(DockerModel):
    """Swarm is never supported, so the node is always inactive."""
    node_id: str = Field(default="", alias="NodeID")
    node_addr: str = ""
    local_node_state: str = "inactive"
    control_available: bool = False
    error: str = ""


class InfoResponse(DockerModel):
    """
    Body of ``GET /info``.
    """
    id: str = Field(alias="ID")
    containers: int = 0
    containers_running: int = 0
    containers_paused: int = 0
    containers_stopped: int = 0
    images: int = 0
    driver: str = ""
    driver_status: List[List[str]] = []
    memory_limit: bool = False
    swap_limit: bool = False
    kernel_memory: bool = False
    cpu_cfs_period: bool = False
    cpu_cfs_quota: bool = False
    cpu_shares: bool = Field(default=False, alias="CPUShares")
    cpu_set: bool = Field(default=False, alias="CPUSet")
    pids_limit: bool = False
    ipv4_forwarding: bool = Field(default=False, alias="IPv4Forwarding")
    bridge_nf_iptables: bool = False
    bridge_nf_ip6tables: bool = Field(default=False, alias="BridgeNfIp6tables")
    debug: bool = False
    n_fd: int = Field(default=0, alias="NFd")
    oom_kill_disable: bool = False
    n_goroutines: int = Field(default=0, alias="NGoroutines")
    system_time: str = ""
    logging_driver: str = ""
    cgroup_driver: str = ""
    cgroup_version: Optional[str] = None
    n_events_listener: int = 0
    kernel_version: str = ""
    operating_system: str = ""
    os_type: str = Field(default="linux", alias="OSType")
    architecture: str = ""
    index_server_address: str = "https://index.docker.io/v1/"
    n_cpu: int = Field(default=0, alias="NCPU")
    mem_total: int = 0
    docker_root_dir: str = ""
    http_proxy: str = ""
    https_proxy: str = ""
    no_proxy: str = ""
    name: str = ""
    labels: List[str] = []
    experimental_build: bool = True
    server_version: str = ""
    runtimes: Dict[str, Runtime] = {}
    default_runtime: str = "runc"
    containerd_commit: Optional[Commit] = None
    runc_commit: Optional[Commit] = None
    init_commit: Optional[Commit] = None
    init_binary: str = ""
    swarm: SwarmInfo = Field(default_factory=SwarmInfo)
    live_restore_enabled: bool = False
    security_options: List[str] = []
    warnings: Optional[List[str]] = None


class BuildCacheEntry(DockerModel):
    """One build cache record as reported in ``/system/df``."""
    id: str = Field(alias="ID")
    parent: Optional[str] = None
    type: str = ""
    description: str = ""
    in_use: bool = False
    shared: bool = False
    size: int = 0
    created_at: str = ""
    last_used_at: Optional[str] = None
    usage_count: int = 0


class DiskUsage(DockerModel):
    """
    Body of ``GET /system/df``.
    """
    layers_size: int = 0
    images: List[ImageSummary] = []
    containers: List[ContainerSummary] = []
    volumes: List[Volume] = []
    build_cache: List[BuildCacheEntry] = []


class BuildPruneReport(DockerModel):
    """
    Body of ``POST /build/prune``.
    """
    caches_deleted: List[str] = []
    space_reclaimed: int = 0
