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
Logical operations of the engine CLIs.

Each method builds one command line and returns parsed records or a
StreamingCommand; none of them knows about HTTP.
"""
import logging
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from ..BUILDERS.build_context import context_file
from ..exceptions import CommandError, NotFoundError
from ..MODELS.build_request import BuildRequest
from ..MODELS.records import (
    ContainerRecord, HistoryRecord, ImageRecord, InfoRecord, NetworkRecord,
    VersionRecord, VolumeRecord,
)
from ..MODELS.server_config import ServerConfig
from ..PARSERS.build_cache_parser import CacheRecord, CacheSummary, parse_build_cache
from ..PARSERS.output_parser import (
    build_record, parse_inspect, parse_json_blob, parse_records, parse_rmi,
)
from ..PARSERS.version_banner import (
    VersionDetails, parse_module_banner, parse_nerdctl_banner, parse_runc_banner,
    parse_tini_banner,
)
from .process_runner import CommandRunner, StreamingCommand

logger = logging.getLogger(__name__)

JSON_FORMAT = ("--format", "{{json .}}")


class Nerdctl:
    """
    Wrapper around the ``nerdctl`` binary.
    """
    def __init__(self, executable: str = "nerdctl", namespace: Optional[str] = None):
        global_args = ["--namespace", namespace] if namespace else []
        self.runner = CommandRunner(executable, global_args)

    @classmethod
    def from_config(cls, config: ServerConfig) -> "Nerdctl":
        return cls(config.nerdctl_path, config.namespace)

    # System

    def version_banner(self) -> str:
        """
        Version of nerdctl itself, from ``nerdctl --version``.
        """
        return parse_nerdctl_banner(self.runner.run("--version"))

    def version(self) -> VersionRecord:
        return build_record(VersionRecord, parse_json_blob(self.runner.run("version", *JSON_FORMAT)))

    def info(self) -> InfoRecord:
        return build_record(InfoRecord, parse_json_blob(self.runner.run("info", *JSON_FORMAT)))

    # Images

    def images(self, references: Optional[List[str]] = None) -> List[ImageRecord]:
        """
        Lists images, optionally restricted to the given reference patterns.
        """
        args = ["images"]
        for reference in references or []:
            args += ["--filter", f"reference={reference}"]
        return parse_records(ImageRecord, self.runner.run(*args, *JSON_FORMAT))

    def image_inspect(self, name: str) -> Dict[str, Any]:
        return self._inspect(["image", "inspect"], name, "image")

    def history(self, name: str) -> List[HistoryRecord]:
        try:
            output = self.runner.run("history", *JSON_FORMAT, "--", name)
        except CommandError as e:
            raise NotFoundError(e.stderr or f"No such image: {name}") from e
        return parse_records(HistoryRecord, output)

    def tag(self, source: str, target: str) -> None:
        self.runner.run("tag", "--", source, target)

    def pull(self, reference: str) -> StreamingCommand:
        return self.runner.stream("pull", "--", reference)

    def push(self, reference: str) -> StreamingCommand:
        return self.runner.stream("push", "--", reference)

    def rmi(self, name: str, force: bool = False) -> List[Dict[str, str]]:
        args = ["rmi"]
        if force:
            args.append("-f")
        return parse_rmi(self.runner.run(*args, "--", name))

    def load(self, archive: BinaryIO, quiet: bool = False) -> StreamingCommand:
        """
        Prepares ``nerdctl load`` fed from ``archive``.
        """
        args = ["load"]
        if quiet:
            args.append("--quiet")
        return self.runner.stream(*args, stdin=archive)

    def save(self, names: List[str]) -> StreamingCommand:
        """
        Prepares ``nerdctl save``; stderr is kept apart from the tar stream.
        """
        return self.runner.stream("save", "--", *names, merge_stderr=False)

    def build(self, request: BuildRequest) -> StreamingCommand:
        """
        Prepares ``nerdctl build`` for an extracted context.
        """
        args = ["build", "--progress=plain"]
        for tag in request.tags:
            args += ["-t", tag]
        if request.dockerfile:
            args += ["-f", context_file(request.context_dir, request.dockerfile)]
        if request.platform:
            args += ["--platform", request.platform]
        for key, value in request.build_args.items():
            args += ["--build-arg", key if value is None else f"{key}={value}"]
        for key, value in request.labels.items():
            args += ["--label", f"{key}={value}"]
        if request.target:
            args += ["--target", request.target]
        if request.no_cache:
            args.append("--no-cache")
        if request.quiet:
            args.append("-q")
        args.append(request.context_dir)
        logger.info("build %s", " ".join(args[1:]))
        return self.runner.stream(*args)

    # Containers

    def ps(self, all: bool = False, size: bool = False) -> List[ContainerRecord]:
        args = ["ps"]
        if all:
            args.append("-a")
        if size:
            args.append("--size")
        return parse_records(ContainerRecord, self.runner.run(*args, *JSON_FORMAT))

    def container_inspect(self, name: str) -> Dict[str, Any]:
        return self._inspect(["container", "inspect"], name, "container")

    def logs(self, name: str, tail: Optional[str] = None, follow: bool = False,
             timestamps: bool = False) -> StreamingCommand:
        args = ["logs"]
        if tail and tail != "all":
            args += ["--tail", tail]
        if follow:
            args.append("--follow")
        if timestamps:
            args.append("--timestamps")
        return self.runner.stream(*args, "--", name, merge_stderr=False)

    # Volumes and networks

    def volumes(self, size: bool = False) -> List[VolumeRecord]:
        args = ["volume", "ls"]
        if size:
            args.append("--size")
        return parse_records(VolumeRecord, self.runner.run(*args, *JSON_FORMAT))

    def volume_inspect(self, name: str) -> VolumeRecord:
        return build_record(VolumeRecord, self._inspect(["volume", "inspect"], name, "volume"))

    def networks(self) -> List[NetworkRecord]:
        return parse_records(NetworkRecord, self.runner.run("network", "ls", *JSON_FORMAT))

    def network_inspect(self, name: str) -> Dict[str, Any]:
        return self._inspect(["network", "inspect"], name, "network")

    def _inspect(self, command: List[str], name: str, kind: str) -> Dict[str, Any]:
        try:
            output = self.runner.run(*command, "--", name)
        except CommandError as e:
            raise NotFoundError(e.stderr or f"No such {kind}: {name}") from e
        objects = parse_inspect(output)
        if not objects:
            raise NotFoundError(f"No such {kind}: {name}")
        return objects[0]


class Buildctl:
    """
    Wrapper around the ``buildctl`` binary, for the build cache.
    """
    def __init__(self, executable: str = "buildctl", buildkit_host: Optional[str] = None):
        global_args = ["--addr", buildkit_host] if buildkit_host else []
        self.runner = CommandRunner(executable, global_args)

    @classmethod
    def from_config(cls, config: ServerConfig) -> "Buildctl":
        return cls(config.buildctl_path, config.buildkit_host)

    def du(self) -> List[CacheRecord]:
        records, _ = parse_build_cache(self.runner.run("du", "-v"))
        return records

    def prune(self, all: bool = False,
              keep_storage: Optional[int] = None) -> Tuple[List[CacheRecord], Optional[CacheSummary]]:
        """
        Removes build cache records.

        :param all: Also remove records still referenced by images.
        :param keep_storage: Bytes of cache to keep.
        :return: The removed records and the printed totals.
        """
        args = ["prune", "--verbose"]
        if all:
            args.append("--all")
        if keep_storage:
            args += ["--keep-storage", str(keep_storage // (1024 * 1024))]
        return parse_build_cache(self.runner.run(*args))


class ToolVersions:
    """
    Reads the version banners of the engine components.

    containerd is required; buildkitd, runc and tini are optional and give
    ``None`` when they cannot be run.
    """
    def __init__(self, containerd: str = "containerd", buildkitd: str = "buildkitd",
                 runc: str = "runc", tini: str = "tini"):
        self.paths = {"containerd": containerd, "buildkitd": buildkitd,
                      "runc": runc, "tini": tini}

    def _banner(self, tool: str) -> str:
        return CommandRunner(self.paths[tool]).run("--version")

    def _optional(self, tool: str) -> Optional[str]:
        try:
            return self._banner(tool)
        except CommandError as e:
            logger.debug("%s unavailable: %s", tool, e)
            return None

    def containerd(self) -> VersionDetails:
        return parse_module_banner(self._banner("containerd"), "containerd")

    def buildkitd(self) -> Optional[VersionDetails]:
        banner = self._optional("buildkitd")
        return parse_module_banner(banner, "buildkitd") if banner else None

    def runc(self) -> Optional[VersionDetails]:
        banner = self._optional("runc")
        return parse_runc_banner(banner) if banner else None

    def tini(self) -> Optional[VersionDetails]:
        banner = self._optional("tini")
        return parse_tini_banner(banner) if banner else None
