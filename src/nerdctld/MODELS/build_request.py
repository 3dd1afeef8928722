"""
Models for image build requests.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel

class BuildRequest(BaseModel):
    """
    Options of one ``POST /build`` call, bound to the directory the uploaded
    context was extracted into.
    """
    context_dir: str
    tags: List[str] = []
    dockerfile: Optional[str] = None
    platform: Optional[str] = None
    build_args: Dict[str, Optional[str]] = {}
    labels: Dict[str, str] = {}
    target: Optional[str] = None
    no_cache: bool = False
    quiet: bool = False
