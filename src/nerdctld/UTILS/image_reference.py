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
Image reference handling.

nerdctl prints fully qualified names in some places ('docker.io/library/alpine:latest')
and short ones in others ('alpine'); Docker clients send whatever the user typed.
"""

from typing import Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class ImageReference:
    """
    Parsed image reference.

    Examples:
        - alpine -> docker.io/library/alpine:latest
        - myuser/app:v1 -> docker.io/myuser/app:v1
        - localhost:5000/app -> localhost:5000/app:latest
        - ghcr.io/org/app@sha256:abc -> ghcr.io/org/app@sha256:abc
    """

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    DEFAULT_REGISTRY = "docker.io"
    DEFAULT_TAG = "latest"

    @classmethod
    def parse(cls, reference: str) -> "ImageReference":
        """
        Parse an image reference string.

        Args:
            reference: Image reference, with optional registry, tag and digest.

        Returns:
            Parsed ImageReference object.
        """
        if not reference:
            raise ValueError("Empty image reference")

        digest = None
        if "@" in reference:
            reference, digest = reference.rsplit("@", 1)

        tag = None
        last_colon = reference.rfind(":")
        if last_colon != -1 and "/" not in reference[last_colon + 1:]:
            tag = reference[last_colon + 1:]
            reference = reference[:last_colon]

        first, _, rest = reference.partition("/")
        if rest and ("." in first or ":" in first or first == "localhost"):
            registry, repository = first, rest
        else:
            registry = cls.DEFAULT_REGISTRY
            repository = reference
            if "/" not in repository:
                repository = f"library/{repository}"

        if not tag and not digest:
            tag = cls.DEFAULT_TAG

        return cls(registry=registry, repository=repository, tag=tag, digest=digest)

    @property
    def full_name(self) -> str:
        """Get full image name with registry."""
        name = f"{self.registry}/{self.repository}"
        if self.digest:
            return f"{name}@{self.digest}"
        return f"{name}:{self.tag}"


def same_image(left: str, right: str) -> bool:
    """True when two references name the same repository and tag."""
    try:
        return ImageReference.parse(left).full_name == ImageReference.parse(right).full_name
    except ValueError:
        return False


def pull_reference(from_image: str, tag: Optional[str]) -> str:
    """
    Builds the reference passed to ``nerdctl pull`` from the ``fromImage``
    and ``tag`` query parameters of ``POST /images/create``.
    """
    if not tag:
        return from_image
    if tag.startswith("sha256:"):
        return f"{from_image}@{tag}"
    return f"{from_image}:{tag}"
