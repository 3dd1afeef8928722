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
Routing of API requests to handlers.

Templates are written like ``/{ver}/images/{name:path}/json``:

- ``{ver}`` matches a version segment such as ``v1.43`` and nothing else,
- ``{name}`` matches a single path segment,
- ``{name:path}`` matches one or more segments, for image names that carry a
  registry host and namespace.

A path that matches no route is retried as an image push
(``/<ver>/images/<name>/push`` with a slash in the name), then, when it has no
version segment, with the current API version prepended. Whatever is left
answers 501.
"""
import logging
import re
from typing import Callable, Dict, List, Optional, Pattern, Tuple
from urllib.parse import unquote

from .. import API_VERSION
from ..exceptions import MethodNotAllowed, NerdctldError, NotImplementedByServer
from .http_io import Request, ResponseWriter

logger = logging.getLogger(__name__)

VERSION_SEGMENT = r"v\d+\.\d+"

Handler = Callable[[Request, ResponseWriter], None]

_PLACEHOLDER = re.compile(r"\{(\w+)(?::(path))?\}")
_VERSIONED = re.compile(r"^/" + VERSION_SEGMENT + r"(/|$)")
PUSH_PATH = re.compile(r"^/(?P<ver>" + VERSION_SEGMENT + r")/images/(?P<name>.+)/push$")

# Bytes of unread request body discarded before giving up on keep-alive
DRAIN_LIMIT = 1024 * 1024


def compile_template(template: str) -> Pattern:
    """
    Turns a route template into an anchored regular expression.
    """
    parts = []
    position = 0
    for match in _PLACEHOLDER.finditer(template):
        parts.append(re.escape(template[position:match.start()]))
        name, kind = match.groups()
        if name == "ver":
            parts.append(f"(?P<ver>{VERSION_SEGMENT})")
        elif kind == "path":
            parts.append(f"(?P<{name}>.+)")
        else:
            parts.append(f"(?P<{name}>[^/]+)")
        position = match.end()
    parts.append(re.escape(template[position:]))
    return re.compile("^" + "".join(parts) + "$")


class Route:
    def __init__(self, method: str, template: str, handler: Handler):
        self.method = method
        self.template = template
        self.pattern = compile_template(template)
        self.handler = handler

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.pattern.match(path)
        if found is None:
            return None
        return {key: unquote(value) for key, value in found.groupdict().items()}

    def __repr__(self):
        return f"Route({self.method} {self.template})"


class Router:
    """
    Ordered route table; the first route matching method and path wins.
    """
    def __init__(self):
        self.routes: List[Route] = []
        self.push_handler: Optional[Handler] = None

    def add(self, method: str, template: str, handler: Handler) -> None:
        self.routes.append(Route(method, template, handler))

    def _lookup(self, method: str, path: str) -> Tuple[Optional[Route], Dict[str, str], bool]:
        path_matched = False
        for route in self.routes:
            params = route.match(path)
            if params is None:
                continue
            if route.method == method:
                return route, params, True
            path_matched = True
        return None, {}, path_matched

    def resolve(self, method: str, path: str, retry: bool = True) -> Tuple[Handler, Dict[str, str]]:
        """
        Finds the handler for a request.

        :return: The handler and the parameters captured from the path.
        :raises MethodNotAllowed: If only the method is wrong.
        :raises NotImplementedByServer: If nothing handles the path.
        """
        route, params, path_matched = self._lookup(method, path)
        if route is not None:
            return route.handler, params

        push = PUSH_PATH.match(path)
        if push and method == "POST" and self.push_handler is not None:
            return self.push_handler, {k: unquote(v) for k, v in push.groupdict().items()}

        if retry and not _VERSIONED.match(path):
            try:
                return self.resolve(method, f"/v{API_VERSION}{path}", retry=False)
            except MethodNotAllowed:
                path_matched = True
            except NotImplementedByServer:
                pass

        if path_matched:
            raise MethodNotAllowed(f"{method} not allowed on {path}")
        raise NotImplementedByServer(f"{method} {path} not implemented")

    def dispatch(self, request: Request, response: ResponseWriter) -> bool:
        """
        Runs the handler for ``request``, turning every failure into a
        response.

        :return: False when the connection cannot be reused.
        """
        keep_alive = True
        try:
            handler, request.params = self.resolve(request.method, request.path)
            handler(request, response)
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.info("client went away during %s %s: %s", request.method, request.path, e)
            return False
        except NerdctldError as e:
            if e.status_code >= 500:
                logger.error("%s %s: %s", request.method, request.path, e)
            else:
                logger.debug("%s %s: %s", request.method, request.path, e)
            keep_alive = self._fail(response, e.status_code, str(e))
        except Exception:
            logger.exception("unhandled error in %s %s", request.method, request.path)
            keep_alive = self._fail(response, 500, "internal server error")
        else:
            response.finish()
        try:
            if not request.body.drain(DRAIN_LIMIT):
                keep_alive = False
        except (NerdctldError, OSError):
            keep_alive = False
        return keep_alive

    def _fail(self, response: ResponseWriter, status: int, message: str) -> bool:
        if response.headers_sent:
            # The status line is gone; cutting the body short is all that is left
            logger.warning("aborting response after headers were sent: %s", message)
            return False
        response.send_text(status, message)
        return True
