"""
Models for the volume endpoints.
"""
from typing import Dict, List, Optional

from .docker_model import DockerModel

class UsageData(DockerModel):
    size: int = -1
    ref_count: int = -1


class Volume(DockerModel):
    """
    A volume as returned by ``GET /volumes`` and ``GET /volumes/{name}``.
    """
    name: str
    driver: str = "local"
    mountpoint: str = ""
    created_at: Optional[str] = None
    labels: Dict[str, str] = {}
    scope: str = "local"
    options: Dict[str, str] = {}
    usage_data: Optional[UsageData] = None


class VolumeList(DockerModel):
    volumes: List[Volume] = []
    warnings: List[str] = []
