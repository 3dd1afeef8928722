import http.client
import os
import shutil
import socket
import tempfile
import threading

import pytest
from nerdctld.MODELS.server_config import ListenAddress
from nerdctld.RUNNERS.nerdctl import Buildctl, Nerdctl, ToolVersions
from nerdctld.SERVER.handlers import DockerAPI
from nerdctld.SERVER.transport import create_server

FAKE_NERDCTL = r"""#!/bin/sh
echo "$*" >> "{log}"
case "$1" in
--version)
    echo "nerdctl version 1.7.6" ;;
version)
    echo '{{"Client":{{"Version":"v1.7.6","GitCommit":"845e989","GoVersion":"go1.21.6","Os":"linux","Arch":"amd64","Components":null}},"Server":null}}' ;;
info)
    echo '{{"ID":"e7a1","Name":"testhost","Driver":"overlayfs","NCPU":2,"MemTotal":1024,"OSType":"linux","Warnings":null}}' ;;
images)
    echo '{{"ID":"8ca4688f4f35","Repository":"alpine","Tag":"latest","Digest":"","CreatedAt":"2024-03-01 12:00:00 +0000 UTC","Size":"7.6 MiB"}}' ;;
ps)
    echo '{{"ID":"c1","Names":"web","Image":"alpine","CreatedAt":"2024-03-01 12:00:00 +0000 UTC","Status":"Up 2 minutes","Ports":""}}' ;;
volume)
    echo '{{"Name":"data","Driver":"local","Mountpoint":"/var/lib/nerdctl/volumes/data","Size":"4.0 KiB"}}' ;;
image)
    echo "no such image: $4" >&2
    exit 1 ;;
build)
    for arg in "$@"; do context="$arg"; done
    echo "$context" > "{context}"
    echo "#1 building"
    cat "$context/Dockerfile" ;;
save)
    printf 'FAKE-TAR-%s' "$3" ;;
load)
    cat > /dev/null
    echo "Loaded image: alpine:latest" ;;
logs)
    echo "hello from stdout"
    echo "hello from stderr" >&2 ;;
*)
    echo "unknown command $1" >&2
    exit 1 ;;
esac
"""

FAKE_CONTAINERD = """#!/bin/sh
echo "containerd github.com/containerd/containerd v1.7.13 7c3aca7a610df76212171d200ca3811ff6096eb8"
"""


class UnixHTTPConnection(http.client.HTTPConnection):
    """HTTP connection over a Unix socket"""
    def __init__(self, socket_path: str, timeout: int = 10):
        super().__init__('localhost', timeout=timeout)
        self.socket_path = socket_path

    def connect(self):
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.sock.settimeout(self.timeout)
        self.sock.connect(self.socket_path)


class Engine:
    """A running server backed by the fake CLIs, plus a small client."""
    def __init__(self, socket_path, log_path, context_path):
        self.socket_path = socket_path
        self.log_path = log_path
        self.context_path = context_path

    def connect(self) -> UnixHTTPConnection:
        return UnixHTTPConnection(self.socket_path)

    def request(self, method, path, body=None, headers=None):
        conn = self.connect()
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()

    def calls(self):
        if not os.path.exists(self.log_path):
            return []
        with open(self.log_path) as f:
            return f.read().splitlines()


def write_script(path, content):
    with open(path, "w") as f:
        f.write(content)
    os.chmod(path, 0o755)
    return str(path)


@pytest.fixture
def engine(tmp_path):
    log_path = str(tmp_path / "calls.log")
    context_path = str(tmp_path / "context.txt")
    nerdctl = write_script(tmp_path / "nerdctl",
                           FAKE_NERDCTL.format(log=log_path, context=context_path))
    containerd = write_script(tmp_path / "containerd", FAKE_CONTAINERD)
    missing = str(tmp_path / "missing")

    api = DockerAPI(
        Nerdctl(nerdctl),
        Buildctl(missing),
        ToolVersions(containerd=containerd, buildkitd=missing, runc=missing, tini=missing),
    )
    # Unix socket paths are limited to ~108 bytes; tmp_path can be longer
    socket_dir = tempfile.mkdtemp(prefix="nd")
    socket_path = os.path.join(socket_dir, "api.sock")
    server = create_server(ListenAddress.parse(f"unix://{socket_path}"), api.router())
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield Engine(socket_path, log_path, context_path)
    server.shutdown()
    server.server_close()
    shutil.rmtree(socket_dir, ignore_errors=True)
