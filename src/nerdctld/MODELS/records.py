"""
Records parsed from nerdctl's ``--format '{{json .}}'`` output.

nerdctl is not consistent about field types: labels arrive as ``"a=b,c=d"``
strings in listings and as objects in inspect output, names as a single
string or as an array. The validators below settle each field to one Python
type when the record is built so the mappers never look at the raw shape.
"""
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_pascal


def split_labels(value: Any) -> Dict[str, str]:
    """
    Normalizes a label field given either as a mapping or as ``k=v,k2=v2``.
    """
    if not value:
        return {}
    if isinstance(value, dict):
        return {str(k): "" if v is None else str(v) for k, v in value.items()}
    labels = {}
    for item in str(value).split(","):
        item = item.strip()
        if not item:
            continue
        key, _, val = item.partition("=")
        labels[key] = val
    return labels


def split_list(value: Any) -> List[str]:
    """
    Normalizes a field given either as an array or as a comma separated string.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [part.strip() for part in str(value).split(",") if part.strip()]


class CLIRecord(BaseModel):
    """
    One JSON object printed by the CLI.
    """
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True,
                              extra="ignore", frozen=True)


class ImageRecord(CLIRecord):
    """A line of ``nerdctl images``."""
    id: str = Field(alias="ID")
    repository: str = "<none>"
    tag: str = "<none>"
    digest: str = ""
    created_at: str
    created_since: str = ""
    size: str = "0 B"
    platform: str = ""


class ContainerRecord(CLIRecord):
    """A line of ``nerdctl ps``."""
    id: str = Field(alias="ID")
    names: List[str] = []
    image: str = ""
    command: str = ""
    created_at: str
    status: str = ""
    ports: str = ""
    size: str = ""
    labels: Dict[str, str] = {}

    @field_validator("names", mode="before")
    @classmethod
    def normalize_names(cls, value: Any) -> List[str]:
        return split_list(value)

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, value: Any) -> Dict[str, str]:
        return split_labels(value)


class HistoryRecord(CLIRecord):
    """A line of ``nerdctl history``."""
    snapshot: str = "<missing>"
    created_at: str = ""
    created_since: str = ""
    created_by: str = ""
    size: str = "0 B"
    comment: str = ""


class VolumeRecord(CLIRecord):
    """A line of ``nerdctl volume ls`` or an element of ``volume inspect``."""
    name: str
    driver: str = "local"
    mountpoint: str = ""
    scope: str = ""
    size: str = ""
    labels: Dict[str, str] = {}
    created_at: Optional[str] = None

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, value: Any) -> Dict[str, str]:
        return split_labels(value)

    @field_validator("size", mode="before")
    @classmethod
    def size_as_text(cls, value: Any) -> str:
        # volume inspect --size reports an integer, volume ls a human string
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return f"{value} B"
        return str(value)


class NetworkRecord(CLIRecord):
    """A line of ``nerdctl network ls`` or an element of ``network inspect``."""
    id: str = Field(default="", validation_alias=AliasChoices("ID", "Id"))
    name: str
    labels: Dict[str, str] = {}
    ipam: Dict[str, Any] = Field(default={}, alias="IPAM")
    containers: Dict[str, Any] = {}

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, value: Any) -> Dict[str, str]:
        return split_labels(value)

    @field_validator("id", mode="before")
    @classmethod
    def id_or_empty(cls, value: Any) -> str:
        return value or ""

    @field_validator("ipam", "containers", mode="before")
    @classmethod
    def mapping_or_empty(cls, value: Any) -> Dict[str, Any]:
        return value or {}


class ComponentRecord(CLIRecord):
    """A component entry of ``nerdctl version``."""
    name: str
    version: str
    details: Dict[str, str] = {}

    @field_validator("details", mode="before")
    @classmethod
    def details_or_empty(cls, value: Any) -> Dict[str, str]:
        return value or {}


class ClientVersionRecord(CLIRecord):
    """The ``Client`` block of ``nerdctl version``."""
    version: str = ""
    git_commit: Optional[str] = None
    go_version: str = ""
    os: str = ""
    arch: str = ""
    components: List[ComponentRecord] = []

    @field_validator("git_commit", mode="before")
    @classmethod
    def commit_or_none(cls, value: Any) -> Optional[str]:
        return value or None

    @field_validator("components", mode="before")
    @classmethod
    def components_or_empty(cls, value: Any) -> List[Any]:
        return value or []


class VersionRecord(CLIRecord):
    """Output of ``nerdctl version``."""
    client: ClientVersionRecord
    server: Dict[str, Any] = {}

    @field_validator("server", mode="before")
    @classmethod
    def server_or_empty(cls, value: Any) -> Dict[str, Any]:
        return value or {}


class InfoRecord(CLIRecord):
    """Output of ``nerdctl info``."""
    id: str = Field(alias="ID")
    name: str
    driver: str = ""
    logging_driver: str = ""
    cgroup_driver: str = ""
    cgroup_version: str = ""
    kernel_version: str = ""
    operating_system: str = ""
    os_type: str = Field(default="linux", alias="OSType")
    architecture: str = ""
    n_cpu: int = Field(default=0, alias="NCPU")
    mem_total: int = 0
    memory_limit: bool = False
    swap_limit: bool = False
    cpu_cfs_period: bool = False
    cpu_cfs_quota: bool = False
    cpu_shares: bool = Field(default=False, alias="CPUShares")
    cpu_set: bool = Field(default=False, alias="CPUSet")
    pids_limit: bool = False
    ipv4_forwarding: bool = Field(default=False, alias="IPv4Forwarding")
    bridge_nf_iptables: bool = False
    bridge_nf_ip6tables: bool = Field(default=False, alias="BridgeNfIp6tables")
    security_options: List[str] = []
    warnings: List[str] = []

    @field_validator("security_options", "warnings", mode="before")
    @classmethod
    def as_list(cls, value: Any) -> List[str]:
        return split_list(value)
