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
Mapping of engine version, info and disk usage data to Docker documents.
"""
from collections import Counter
from typing import List, Optional

from .. import API_VERSION, MIN_API_VERSION
from ..MODELS.containers import StatusCategory
from ..MODELS.records import (
    ContainerRecord, ImageRecord, InfoRecord, VersionRecord, VolumeRecord,
)
from ..MODELS.system import (
    Commit, ComponentVersion, DiskUsage, InfoResponse, Platform, Runtime,
    VersionResponse,
)
from ..PARSERS.build_cache_parser import CacheRecord
from ..PARSERS.version_banner import VersionDetails, vercmp
from .build import map_build_cache
from .containers import map_container_list
from .images import map_image_list
from .volumes import map_volume

# API versions above this one get Platform and Components in /version
COMPONENTS_MIN_API = "1.35"


def wants_components(api_version: str) -> bool:
    """True when the requested API version gets the detailed /version shape."""
    return vercmp(api_version.lstrip("v"), COMPONENTS_MIN_API) > 0


def component(name: str, version: Optional[VersionDetails]) -> Optional[ComponentVersion]:
    if version is None:
        return None
    number, details = version
    return ComponentVersion(name=name, version=number, details=details or None)


def map_components(nerdctl_version: str,
                   containerd: VersionDetails,
                   buildkitd: Optional[VersionDetails] = None,
                   runc: Optional[VersionDetails] = None,
                   tini: Optional[VersionDetails] = None) -> List[ComponentVersion]:
    """
    Lists the engine components, skipping the optional ones that are missing.
    """
    components = [ComponentVersion(name="nerdctl", version=nerdctl_version)]
    for name, version in (("containerd", containerd), ("buildkitd", buildkitd),
                          ("runc", runc), ("tini", tini)):
        entry = component(name, version)
        if entry is not None:
            components.append(entry)
    return components


def map_version(record: VersionRecord, nerdctl_version: str,
                components: Optional[List[ComponentVersion]] = None) -> VersionResponse:
    """
    Builds ``GET /version``.

    :param record: Parsed ``nerdctl version`` output.
    :param nerdctl_version: Version from the nerdctl banner.
    :param components: Component list; ``None`` gives the legacy shape
        without Platform and Components.
    """
    return VersionResponse(
        platform=Platform() if components is not None else None,
        components=components,
        version=nerdctl_version,
        api_version=API_VERSION,
        min_api_version=MIN_API_VERSION,
        git_commit=record.client.git_commit,
        go_version=record.client.go_version,
        os=record.client.os,
        arch=record.client.arch,
        experimental=True,
    )


def _commit(components: List[ComponentVersion], name: str) -> Optional[Commit]:
    for entry in components:
        if entry.name == name and entry.details and entry.details.get("GitCommit"):
            commit = entry.details["GitCommit"]
            return Commit(id=commit, expected=commit)
    return None


def map_info(record: InfoRecord, nerdctl_version: str,
             containers: List[ContainerRecord], image_count: int,
             components: Optional[List[ComponentVersion]] = None) -> InfoResponse:
    """
    Builds ``GET /info``.

    Container counts come from the full ``ps -a`` listing; created containers
    are counted as stopped.
    """
    components = components or []
    counts = Counter(StatusCategory.from_status(c.status) for c in containers)
    has_tini = any(entry.name == "tini" for entry in components)
    return InfoResponse(
        id=record.id,
        containers=len(containers),
        containers_running=counts[StatusCategory.RUNNING],
        containers_paused=counts[StatusCategory.PAUSED],
        containers_stopped=counts[StatusCategory.STOPPED] + counts[StatusCategory.CREATED],
        images=image_count,
        driver=record.driver,
        memory_limit=record.memory_limit,
        swap_limit=record.swap_limit,
        cpu_cfs_period=record.cpu_cfs_period,
        cpu_cfs_quota=record.cpu_cfs_quota,
        cpu_shares=record.cpu_shares,
        cpu_set=record.cpu_set,
        pids_limit=record.pids_limit,
        ipv4_forwarding=record.ipv4_forwarding,
        bridge_nf_iptables=record.bridge_nf_iptables,
        bridge_nf_ip6tables=record.bridge_nf_ip6tables,
        logging_driver=record.logging_driver,
        cgroup_driver=record.cgroup_driver,
        cgroup_version=record.cgroup_version or None,
        kernel_version=record.kernel_version,
        operating_system=record.operating_system,
        os_type=record.os_type,
        architecture=record.architecture,
        n_cpu=record.n_cpu,
        mem_total=record.mem_total,
        name=record.name,
        server_version=nerdctl_version,
        runtimes={"runc": Runtime(path="runc")},
        default_runtime="runc",
        containerd_commit=_commit(components, "containerd"),
        runc_commit=_commit(components, "runc"),
        init_commit=_commit(components, "tini"),
        init_binary="tini" if has_tini else "",
        security_options=record.security_options,
        warnings=record.warnings or None,
    )


def map_disk_usage(images: List[ImageRecord], containers: List[ContainerRecord],
                   volumes: List[VolumeRecord], cache: List[CacheRecord],
                   now: Optional[float] = None) -> DiskUsage:
    """
    Builds ``GET /system/df``.

    :param images: ``nerdctl images`` lines.
    :param containers: ``nerdctl ps -a --size`` lines.
    :param volumes: ``nerdctl volume ls --size`` lines.
    :param cache: ``buildctl du`` records; empty when BuildKit is unavailable.
    """
    image_summaries = map_image_list(images, containers)
    return DiskUsage(
        layers_size=sum(image.size for image in image_summaries),
        images=image_summaries,
        containers=map_container_list(containers, size=True),
        volumes=[map_volume(volume) for volume in volumes],
        build_cache=map_build_cache(cache, now),
    )
