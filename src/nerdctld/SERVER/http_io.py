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
Request and response plumbing on top of ``http.server``.

Docker clients upload build contexts and image archives with chunked
transfer encoding and expect streamed responses in the same encoding, which
``BaseHTTPRequestHandler`` leaves to the application.
"""
import io
import json
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Optional

from .. import API_VERSION
from ..exceptions import BadRequestError

TRUE_VALUES = ("1", "true", "True")

MAX_LINE = 65536


class RequestBody(io.RawIOBase):
    """
    Readable view of a request body, framed either by ``Content-Length``
    or by chunked transfer encoding.
    """
    def __init__(self, rfile: BinaryIO, headers):
        super().__init__()
        self.rfile = rfile
        self.chunked = "chunked" in (headers.get("Transfer-Encoding") or "").lower()
        self._remaining = 0
        self._chunk_left = 0
        if not self.chunked:
            length = headers.get("Content-Length") or "0"
            if not length.strip().isdigit():
                raise BadRequestError(f"invalid Content-Length {length!r}")
            self._remaining = int(length)
        self.finished = not self.chunked and self._remaining == 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.finished:
            return 0
        if self.chunked:
            if self._chunk_left == 0:
                self._chunk_left = self._next_chunk_size()
                if self._chunk_left == 0:
                    self._skip_trailers()
                    self.finished = True
                    return 0
            want = min(len(buffer), self._chunk_left)
        else:
            want = min(len(buffer), self._remaining)
        data = self.rfile.read(want)
        if not data:
            raise BadRequestError("request body ended early")
        size = len(data)
        buffer[:size] = data
        if self.chunked:
            self._chunk_left -= size
            if self._chunk_left == 0:
                self.rfile.readline(MAX_LINE)
        else:
            self._remaining -= size
            self.finished = self._remaining == 0
        return size

    def _next_chunk_size(self) -> int:
        line = self.rfile.readline(MAX_LINE)
        try:
            return int(line.split(b";", 1)[0].strip(), 16)
        except ValueError:
            raise BadRequestError("malformed chunked request body") from None

    def _skip_trailers(self):
        while True:
            line = self.rfile.readline(MAX_LINE)
            if line in (b"\r\n", b"\n", b""):
                return

    def drain(self, limit: int) -> bool:
        """
        Discards up to ``limit`` unread bytes.

        :return: True if the body has been read completely.
        """
        while not self.finished and limit > 0:
            chunk = self.read(min(limit, 64 * 1024))
            if not chunk:
                break
            limit -= len(chunk)
        return self.finished


class ChunkedWriter:
    """
    Writes a response body with chunked transfer encoding.
    """
    def __init__(self, wfile: BinaryIO):
        self.wfile = wfile
        self.closed = False

    def write(self, data: bytes) -> int:
        if data:
            self.wfile.write(b"%x\r\n%s\r\n" % (len(data), data))
            self.wfile.flush()
        return len(data)

    def close(self):
        if not self.closed:
            self.closed = True
            self.wfile.write(b"0\r\n\r\n")
            self.wfile.flush()


@dataclass
class Request:
    """
    One API request, with the parameters captured from the route template.
    """
    method: str
    path: str
    query: Dict[str, List[str]]
    headers: Any
    body: RequestBody
    params: Dict[str, str] = field(default_factory=dict)

    def arg(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query.get(name)
        return values[0] if values else default

    def args(self, name: str) -> List[str]:
        return list(self.query.get(name, []))

    def flag(self, name: str) -> bool:
        return self.arg(name) in TRUE_VALUES

    def int_arg(self, name: str, default: Optional[int] = None) -> Optional[int]:
        value = self.arg(name)
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            raise BadRequestError(f"invalid {name} parameter: {value!r}") from None

    def json_arg(self, name: str, default: Any = None) -> Any:
        """
        Decodes a JSON encoded query parameter such as ``filters``.
        """
        value = self.arg(name)
        if not value:
            return default
        try:
            return json.loads(value)
        except ValueError:
            raise BadRequestError(f"invalid {name} parameter: {value!r}") from None

    @property
    def content_type(self) -> str:
        return (self.headers.get("Content-Type") or "").split(";", 1)[0].strip()

    @property
    def api_version(self) -> str:
        """The ``v1.xx`` path segment, the current version for unversioned paths."""
        return self.params.get("ver", "v" + API_VERSION)


class ResponseWriter:
    """
    Sends the response for one request through a BaseHTTPRequestHandler.
    """
    def __init__(self, handler, method: str):
        self.handler = handler
        self.head = method == "HEAD"
        self.headers_sent = False
        self.status: Optional[int] = None
        self.stream: Optional[ChunkedWriter] = None

    def _start(self, status: int, content_type: Optional[str], headers: Optional[Dict[str, str]]):
        if self.headers_sent:
            raise RuntimeError("response already started")
        self.headers_sent = True
        self.status = status
        self.handler.send_response(status)
        if content_type:
            self.handler.send_header("Content-Type", content_type)
        for key, value in (headers or {}).items():
            self.handler.send_header(key, value)

    def send(self, status: int, body: bytes = b"", content_type: Optional[str] = None,
             headers: Optional[Dict[str, str]] = None):
        self._start(status, content_type, headers)
        self.handler.send_header("Content-Length", str(len(body)))
        self.handler.end_headers()
        if body and not self.head:
            self.handler.wfile.write(body)
            self.handler.wfile.flush()

    def send_json(self, status: int, document: Any):
        self.send(status, json.dumps(document).encode("utf-8"), "application/json")

    def send_text(self, status: int, text: str):
        self.send(status, (text + "\n").encode("utf-8"), "text/plain; charset=utf-8")

    def start_stream(self, content_type: str, status: int = 200,
                     headers: Optional[Dict[str, str]] = None) -> ChunkedWriter:
        """
        Sends the headers of a streamed response.

        :return: The writer for the body.
        """
        self._start(status, content_type, headers)
        self.handler.send_header("Transfer-Encoding", "chunked")
        self.handler.end_headers()
        self.stream = ChunkedWriter(self.handler.wfile)
        return self.stream

    def finish(self):
        """Terminates a streamed body."""
        if self.stream is not None:
            self.stream.close()
