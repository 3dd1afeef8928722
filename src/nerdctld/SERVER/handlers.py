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
Docker Engine API endpoints.
"""
import logging
from typing import Any, List, Optional

from .. import API_VERSION, MIN_API_VERSION
from ..BUILDERS.build_context import build_context, check_tar_content_type
from ..exceptions import BadRequestError, CommandError, NerdctldError, NotImplementedByServer
from ..MAPPERS.build import map_build_prune
from ..MAPPERS.containers import map_container_inspect, map_container_list
from ..MAPPERS.images import (
    map_image_delete, map_image_history, map_image_inspect, map_image_list,
)
from ..MAPPERS.networks import map_network_inspect, map_network_list
from ..MAPPERS.system import (
    map_components, map_disk_usage, map_info, map_version, wants_components,
)
from ..MAPPERS.volumes import map_volume_inspect, map_volume_list
from ..MODELS.build_request import BuildRequest
from ..MODELS.system import ComponentVersion
from ..RUNNERS.nerdctl import Buildctl, Nerdctl, ToolVersions
from ..UTILS.image_reference import pull_reference
from .http_io import Request, ResponseWriter
from .router import Router
from .streaming import STDERR, STDOUT, LogFrameWriter, stream_command

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
}


def reference_filters(filters: Any) -> List[str]:
    """
    Extracts the ``reference`` patterns from an image ``filters`` parameter,
    given either as ``{"reference": {"x": true}}`` or ``{"reference": ["x"]}``.
    """
    if not filters:
        return []
    if not isinstance(filters, dict):
        raise BadRequestError("filters must be a JSON object")
    references = filters.get("reference") or []
    if isinstance(references, dict):
        return [name for name, enabled in references.items() if enabled]
    if isinstance(references, list):
        return [str(name) for name in references]
    raise BadRequestError("invalid reference filter")


class DockerAPI:
    """
    The endpoint handlers, bound to the CLI wrappers they call.
    """
    def __init__(self, nerdctl: Nerdctl, buildctl: Buildctl,
                 tools: Optional[ToolVersions] = None):
        self.nerdctl = nerdctl
        self.buildctl = buildctl
        self.tools = tools or ToolVersions()

    def router(self) -> Router:
        """
        Builds the route table.
        """
        router = Router()
        for prefix in ("", "/{ver}"):
            router.add("HEAD", prefix + "/_ping", self.ping_head)
            router.add("GET", prefix + "/_ping", self.ping)
        router.add("GET", "/{ver}/version", self.version)
        router.add("GET", "/{ver}/info", self.info)
        router.add("GET", "/{ver}/system/df", self.system_df)

        router.add("GET", "/{ver}/images/json", self.image_list)
        router.add("POST", "/{ver}/images/create", self.image_create)
        router.add("POST", "/{ver}/images/load", self.image_load)
        router.add("GET", "/{ver}/images/get", self.image_save)
        router.add("POST", "/{ver}/images/{name}/push", self.image_push)
        router.add("GET", "/{ver}/images/{name:path}/json", self.image_inspect)
        router.add("GET", "/{ver}/images/{name:path}/history", self.image_history)
        router.add("POST", "/{ver}/images/{name:path}/tag", self.image_tag)
        router.add("DELETE", "/{ver}/images/{name:path}", self.image_delete)
        router.push_handler = self.image_push

        router.add("GET", "/{ver}/containers/json", self.container_list)
        router.add("GET", "/{ver}/containers/{name}/json", self.container_inspect)
        router.add("GET", "/{ver}/containers/{name}/logs", self.container_logs)

        router.add("GET", "/{ver}/volumes", self.volume_list)
        router.add("GET", "/{ver}/volumes/{name}", self.volume_inspect)
        router.add("GET", "/{ver}/networks", self.network_list)
        router.add("GET", "/{ver}/networks/{name}", self.network_inspect)

        router.add("POST", "/{ver}/build", self.build)
        router.add("POST", "/{ver}/build/prune", self.build_prune)
        return router

    # System

    def ping_head(self, request: Request, response: ResponseWriter):
        response.send(200, headers={"API-Version": API_VERSION, **NO_CACHE_HEADERS})

    def ping(self, request: Request, response: ResponseWriter):
        response.send(200, b"OK", "text/plain",
                      headers={"API-Version": MIN_API_VERSION, **NO_CACHE_HEADERS})

    def components(self, nerdctl_version: str) -> List[ComponentVersion]:
        return map_components(
            nerdctl_version,
            self.tools.containerd(),
            buildkitd=self.tools.buildkitd(),
            runc=self.tools.runc(),
            tini=self.tools.tini(),
        )

    def version(self, request: Request, response: ResponseWriter):
        record = self.nerdctl.version()
        nerdctl_version = self.nerdctl.version_banner()
        components = None
        if wants_components(request.api_version):
            components = self.components(nerdctl_version)
        response.send_json(200, map_version(record, nerdctl_version, components).to_api())

    def info(self, request: Request, response: ResponseWriter):
        record = self.nerdctl.info()
        nerdctl_version = self.nerdctl.version_banner()
        containers = self.nerdctl.ps(all=True)
        image_count = len({image.id for image in self.nerdctl.images()})
        try:
            components = self.components(nerdctl_version)
        except NerdctldError as e:
            logger.warning("component versions unavailable: %s", e)
            components = []
        info = map_info(record, nerdctl_version, containers, image_count, components)
        response.send_json(200, info.to_api())

    def system_df(self, request: Request, response: ResponseWriter):
        images = self.nerdctl.images()
        containers = self.nerdctl.ps(all=True, size=True)
        volumes = self.nerdctl.volumes(size=True)
        try:
            cache = self.buildctl.du()
        except NerdctldError as e:
            logger.warning("build cache usage unavailable: %s", e)
            cache = []
        response.send_json(200, map_disk_usage(images, containers, volumes, cache).to_api())

    # Images

    def image_list(self, request: Request, response: ResponseWriter):
        references = reference_filters(request.json_arg("filters"))
        summaries = map_image_list(self.nerdctl.images(references))
        response.send_json(200, [summary.to_api() for summary in summaries])

    def image_inspect(self, request: Request, response: ResponseWriter):
        image = map_image_inspect(self.nerdctl.image_inspect(request.params["name"]))
        response.send_json(200, image.to_api())

    def image_history(self, request: Request, response: ResponseWriter):
        items = map_image_history(self.nerdctl.history(request.params["name"]))
        response.send_json(200, [item.to_api() for item in items])

    def image_tag(self, request: Request, response: ResponseWriter):
        repo = request.arg("repo")
        if not repo:
            raise BadRequestError("repo is required")
        tag = request.arg("tag")
        self.nerdctl.tag(request.params["name"], f"{repo}:{tag}" if tag else repo)
        response.send(201)

    def image_create(self, request: Request, response: ResponseWriter):
        from_image = request.arg("fromImage")
        if not from_image:
            if request.arg("fromSrc"):
                raise NotImplementedByServer("image import is not implemented")
            raise BadRequestError("fromImage is required")
        reference = pull_reference(from_image, request.arg("tag"))
        logger.info("pull %s", reference)
        stream_command(response, self.nerdctl.pull(reference))

    def image_push(self, request: Request, response: ResponseWriter):
        name = request.params["name"]
        tag = request.arg("tag")
        reference = f"{name}:{tag}" if tag else name
        logger.info("push %s", reference)
        stream_command(response, self.nerdctl.push(reference))

    def image_delete(self, request: Request, response: ResponseWriter):
        items = self.nerdctl.rmi(request.params["name"], force=request.flag("force"))
        response.send_json(200, [item.to_api() for item in map_image_delete(items)])

    def image_load(self, request: Request, response: ResponseWriter):
        check_tar_content_type(request.content_type)
        stream_command(response, self.nerdctl.load(request.body, quiet=request.flag("quiet")))

    def image_save(self, request: Request, response: ResponseWriter):
        names = request.args("names")
        if not names:
            raise BadRequestError("names is required")
        with self.nerdctl.save(names) as command:
            # A failing save prints nothing, so an empty first read means
            # the error can still be reported with a proper status.
            first = command.read_chunk()
            if not first:
                command.wait()
            out = response.start_stream("application/x-tar")
            out.write(first)
            command.copy_stdout_to(out.write)
            command.wait()

    # Containers

    def container_list(self, request: Request, response: ResponseWriter):
        size = request.flag("size")
        records = self.nerdctl.ps(all=request.flag("all"), size=size)
        limit = request.int_arg("limit")
        if limit is not None and limit > 0:
            records = records[:limit]
        response.send_json(200, [c.to_api() for c in map_container_list(records, size)])

    def container_inspect(self, request: Request, response: ResponseWriter):
        container = map_container_inspect(self.nerdctl.container_inspect(request.params["name"]))
        response.send_json(200, container.to_api())

    def container_logs(self, request: Request, response: ResponseWriter):
        show_stdout = request.flag("stdout")
        show_stderr = request.flag("stderr")
        if not show_stdout and not show_stderr:
            show_stdout = show_stderr = True
        command = self.nerdctl.logs(
            request.params["name"],
            tail=request.arg("tail"),
            follow=request.flag("follow"),
            timestamps=request.flag("timestamps"),
        )
        writer = LogFrameWriter(response, request.api_version)
        with command:
            for line in command.lines():
                if show_stdout:
                    writer.write(STDOUT, line)
            try:
                command.wait()
            except CommandError as e:
                if not writer.started:
                    raise
                logger.warning("logs for %s ended with an error: %s", request.params["name"], e)
            if show_stderr:
                for line in command.stderr_text().splitlines():
                    writer.write(STDERR, line)
        writer.close()

    # Volumes and networks

    def volume_list(self, request: Request, response: ResponseWriter):
        response.send_json(200, map_volume_list(self.nerdctl.volumes()).to_api())

    def volume_inspect(self, request: Request, response: ResponseWriter):
        volume = map_volume_inspect(self.nerdctl.volume_inspect(request.params["name"]))
        response.send_json(200, volume.to_api())

    def network_list(self, request: Request, response: ResponseWriter):
        response.send_json(200, [n.to_api() for n in map_network_list(self.nerdctl.networks())])

    def network_inspect(self, request: Request, response: ResponseWriter):
        network = map_network_inspect(self.nerdctl.network_inspect(request.params["name"]))
        response.send_json(200, network.to_api())

    # Build

    def build_options(self, request: Request, context_dir: str) -> BuildRequest:
        build_args = request.json_arg("buildargs", {})
        labels = request.json_arg("labels", {})
        if not isinstance(build_args, dict) or not isinstance(labels, dict):
            raise BadRequestError("buildargs and labels must be JSON objects")
        return BuildRequest(
            context_dir=context_dir,
            tags=request.args("t"),
            dockerfile=request.arg("dockerfile") or None,
            platform=request.arg("platform") or None,
            build_args={str(k): None if v is None else str(v) for k, v in build_args.items()},
            labels={str(k): str(v) for k, v in labels.items()},
            target=request.arg("target") or None,
            no_cache=request.flag("nocache"),
            quiet=request.flag("q"),
        )

    def build(self, request: Request, response: ResponseWriter):
        check_tar_content_type(request.content_type)
        if request.arg("remote"):
            raise NotImplementedByServer("remote build contexts are not implemented")
        options = self.build_options(request, context_dir="")
        with build_context(request.body) as directory:
            options = options.model_copy(update={"context_dir": directory})
            stream_command(response, self.nerdctl.build(options))

    def build_prune(self, request: Request, response: ResponseWriter):
        keep_storage = request.int_arg("keep-storage")
        records, summary = self.buildctl.prune(all=request.flag("all"), keep_storage=keep_storage)
        response.send_json(200, map_build_prune(records, summary).to_api())
