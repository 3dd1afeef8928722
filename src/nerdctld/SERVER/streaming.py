"""
Streamed response bodies: JSON progress messages and multiplexed logs.

Headers go out with the first piece of output, so a command that fails
before printing anything still gets a plain error response with the right
status code.
"""
import json
import logging
import struct
from typing import Optional

from ..exceptions import NerdctldError
from ..PARSERS.version_banner import vercmp
from ..RUNNERS.process_runner import StreamingCommand
from .http_io import ChunkedWriter, ResponseWriter

logger = logging.getLogger(__name__)

STDOUT = 1
STDERR = 2

MULTIPLEXED_STREAM = "application/vnd.docker.multiplexed-stream"
RAW_STREAM = "application/vnd.docker.raw-stream"


class JSONStreamWriter:
    """
    Writes ``{"stream": "..."}`` messages, one JSON document per line.
    """
    def __init__(self, response: ResponseWriter, content_type: str = "application/json"):
        self.response = response
        self.content_type = content_type
        self._out: Optional[ChunkedWriter] = None

    @property
    def started(self) -> bool:
        return self._out is not None

    def _write(self, message: dict):
        if self._out is None:
            self._out = self.response.start_stream(self.content_type)
        self._out.write(json.dumps(message).encode("utf-8") + b"\n")

    def write_line(self, line: str):
        if line:
            self._write({"stream": line + "\n"})

    def write_error(self, message: str):
        """Reports a failure after output has started."""
        self._write({"errorDetail": {"message": message}, "error": message})

    def close(self):
        if self._out is None:
            self._out = self.response.start_stream(self.content_type)
        self.response.finish()


def stream_command(response: ResponseWriter, command: StreamingCommand) -> None:
    """
    Runs ``command`` and relays each output line as a stream message.

    :raises NerdctldError: If the command fails before printing anything.
    """
    writer = JSONStreamWriter(response)
    try:
        with command:
            for line in command.lines():
                writer.write_line(line)
            command.wait()
    except NerdctldError as e:
        if not writer.started:
            raise
        logger.warning("%s failed after streaming started: %s", " ".join(command.argv), e)
        writer.write_error(str(e))
    writer.close()


def frame(stream_type: int, payload: bytes) -> bytes:
    """
    Prefixes ``payload`` with the 8 byte multiplexed stream header: the stream
    type, three zero bytes and the big-endian payload length.
    """
    return struct.pack(">BxxxL", stream_type, len(payload)) + payload


def log_content_type(api_version: str) -> str:
    if vercmp(api_version, "1.42") >= 0:
        return MULTIPLEXED_STREAM
    return RAW_STREAM


class LogFrameWriter:
    """
    Writes container log lines as multiplexed stream frames.
    """
    def __init__(self, response: ResponseWriter, api_version: str):
        self.response = response
        self.content_type = log_content_type(api_version)
        self._out: Optional[ChunkedWriter] = None

    @property
    def started(self) -> bool:
        return self._out is not None

    def write(self, stream_type: int, line: str):
        if self._out is None:
            self._out = self.response.start_stream(self.content_type)
        self._out.write(frame(stream_type, (line + "\n").encode("utf-8")))

    def close(self):
        if self._out is None:
            self._out = self.response.start_stream(self.content_type)
        self.response.finish()
