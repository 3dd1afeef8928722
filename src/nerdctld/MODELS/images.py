"""
Models for the image endpoints.
"""
from typing import Any, Dict, List, Optional
from pydantic import Field

from .docker_model import DockerModel

class ImageSummary(DockerModel):
    """
    An element of ``GET /images/json``.
    """
    id: str
    parent_id: str = ""
    repo_tags: List[str] = []
    repo_digests: List[str] = []
    created: int = 0
    size: int = 0
    shared_size: int = -1
    virtual_size: Optional[int] = None
    labels: Dict[str, str] = {}
    containers: int = -1


class RootFS(DockerModel):
    type: str = "layers"
    layers: List[str] = []


class ImageInspect(DockerModel):
    """
    Body of ``GET /images/{name}/json``.
    """
    id: str
    repo_tags: List[str] = []
    repo_digests: List[str] = []
    parent: str = ""
    comment: str = ""
    created: str = ""
    docker_version: str = ""
    author: str = ""
    config: Optional[Dict[str, Any]] = None
    architecture: str = ""
    variant: Optional[str] = None
    os: str = Field(default="", alias="Os")
    size: int = 0
    virtual_size: Optional[int] = None
    graph_driver: Dict[str, Any] = {}
    root_fs: RootFS = Field(default_factory=RootFS, alias="RootFS")
    metadata: Dict[str, Any] = {}


class HistoryItem(DockerModel):
    """
    An element of ``GET /images/{name}/history``.
    """
    id: str
    created: int = 0
    created_by: str = ""
    tags: List[str] = []
    size: int = 0
    comment: str = ""


class DeleteItem(DockerModel):
    """
    An element of ``DELETE /images/{name}``; exactly one field is set.
    """
    untagged: Optional[str] = None
    deleted: Optional[str] = None
