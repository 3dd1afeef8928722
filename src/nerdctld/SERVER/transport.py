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
Listening sockets and the HTTP/1.1 request handler.

Three kinds of listen address are served: ``unix://path``, ``tcp://host:port``
and ``fd://[N]`` for sockets passed in by systemd socket activation.
"""
import logging
import os
import signal
import socket
import socketserver
import stat
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import List, Mapping, Optional
from urllib.parse import parse_qs, urlsplit

from .. import __version__
from ..exceptions import BadRequestError, ConfigError
from ..MODELS.server_config import ListenAddress
from .http_io import Request, RequestBody, ResponseWriter
from .router import Router

logger = logging.getLogger(__name__)

SD_LISTEN_FDS_START = 3
SOCKET_MODE = 0o660


class APIRequestHandler(BaseHTTPRequestHandler):
    """
    Hands every request to the server's router.
    """
    protocol_version = "HTTP/1.1"
    server_version = f"nerdctld/{__version__}"

    def address_string(self) -> str:
        # Unix socket peers have no address
        if isinstance(self.client_address, tuple) and self.client_address:
            return str(self.client_address[0])
        return "unix"

    def log_request(self, code="-", size="-"):
        logger.info('"%s %s" %s', self.command, self.path, getattr(code, "value", code))

    def log_error(self, format, *args):
        logger.warning(format, *args)

    def log_message(self, format, *args):
        logger.debug(format, *args)

    def handle_request(self):
        url = urlsplit(self.path)
        response = ResponseWriter(self, self.command)
        try:
            body = RequestBody(self.rfile, self.headers)
        except BadRequestError as e:
            response.send_text(e.status_code, str(e))
            self.close_connection = True
            return
        request = Request(
            method=self.command,
            path=url.path or "/",
            query=parse_qs(url.query, keep_blank_values=True),
            headers=self.headers,
            body=body,
        )
        if not self.server.router.dispatch(request, response):
            self.close_connection = True

    do_GET = handle_request
    do_HEAD = handle_request
    do_POST = handle_request
    do_PUT = handle_request
    do_DELETE = handle_request
    do_PATCH = handle_request
    do_OPTIONS = handle_request


class UnixAPIServer(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    daemon_threads = True

    def __init__(self, server_address, router: Router, bind_and_activate: bool = True):
        self.router = router
        super().__init__(server_address, APIRequestHandler, bind_and_activate)


class TCPAPIServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True

    def __init__(self, server_address, router: Router, bind_and_activate: bool = True):
        self.router = router
        super().__init__(server_address, APIRequestHandler, bind_and_activate)


def listen_fds(environ: Optional[Mapping[str, str]] = None) -> List[int]:
    """
    File descriptors passed by systemd socket activation.

    :param environ: Environment to read, ``os.environ`` by default.
    :return: The inherited descriptors, empty when none were passed.
    """
    if environ is None:
        environ = os.environ
    pid = environ.get("LISTEN_PID", "")
    if pid.isdigit() and int(pid) != os.getpid():
        return []
    count = environ.get("LISTEN_FDS", "")
    if not count.isdigit():
        return []
    return list(range(SD_LISTEN_FDS_START, SD_LISTEN_FDS_START + int(count)))


def server_from_fd(fd: int, router: Router) -> socketserver.BaseServer:
    sock = socket.socket(fileno=fd)
    server_class = UnixAPIServer if sock.family == socket.AF_UNIX else TCPAPIServer
    server = server_class(sock.getsockname(), router, bind_and_activate=False)
    server.socket.close()
    server.socket = sock
    return server


def remove_stale_socket(path: str) -> None:
    """
    Removes a socket file left behind by a previous run.

    :raises ConfigError: If something other than a socket is in the way.
    """
    try:
        mode = os.lstat(path).st_mode
    except FileNotFoundError:
        return
    if not stat.S_ISSOCK(mode):
        raise ConfigError(f"{path} exists and is not a socket")
    os.unlink(path)


def create_server(address: ListenAddress, router: Router,
                  environ: Optional[Mapping[str, str]] = None) -> socketserver.BaseServer:
    """
    Opens the listening socket for ``address``.

    :raises ConfigError: If the address cannot be listened on.
    """
    try:
        if address.scheme == "unix":
            remove_stale_socket(address.target)
            server = UnixAPIServer(address.target, router)
            os.chmod(address.target, SOCKET_MODE)
            return server
        if address.scheme == "tcp":
            return TCPAPIServer(address.host_port, router)
    except OSError as e:
        raise ConfigError(f"cannot listen on {address}: {e.strerror}") from None

    fds = listen_fds(environ)
    if not fds:
        raise ConfigError("fd:// needs socket activation, but no file descriptors were passed")
    fd = int(address.target) if address.target else fds[0]
    if fd not in fds:
        raise ConfigError(f"file descriptor {fd} was not passed by socket activation")
    return server_from_fd(fd, router)


def sd_notify(state: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Sends a state line such as ``READY=1`` to the service manager.

    :return: True if a notification socket was configured and reached.
    """
    if environ is None:
        environ = os.environ
    path = environ.get("NOTIFY_SOCKET")
    if not path:
        return False
    if path.startswith("@"):
        path = "\0" + path[1:]
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as sock:
            sock.connect(path)
            sock.sendall(state.encode("utf-8"))
    except OSError as e:
        logger.warning("cannot notify service manager: %s", e)
        return False
    return True


def serve(server: socketserver.BaseServer, address: ListenAddress) -> None:
    """
    Serves until SIGTERM or Ctrl+C, then closes the listener and removes the
    Unix socket file. Must run on the main thread.
    """
    def request_shutdown(signum, frame):
        logger.info("received signal %d, shutting down", signum)
        # shutdown() blocks until serve_forever returns, so not from this thread
        threading.Thread(target=server.shutdown, daemon=True).start()

    previous = signal.signal(signal.SIGTERM, request_shutdown)
    logger.info("listening on %s", address)
    sd_notify("READY=1")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
    finally:
        signal.signal(signal.SIGTERM, previous)
        server.server_close()
        if address.scheme == "unix":
            try:
                os.unlink(address.target)
            except FileNotFoundError:
                pass
