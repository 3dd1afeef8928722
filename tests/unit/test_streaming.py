import io
import json

import pytest
from nerdctld.exceptions import CommandError
from nerdctld.SERVER.http_io import ResponseWriter
from nerdctld.SERVER.streaming import (
    MULTIPLEXED_STREAM, RAW_STREAM, STDERR, STDOUT, JSONStreamWriter, LogFrameWriter,
    frame, log_content_type, stream_command,
)


class FakeHandler:
    def __init__(self):
        self.status = None
        self.headers = {}
        self.wfile = io.BytesIO()

    def send_response(self, status):
        self.status = status

    def send_header(self, key, value):
        self.headers[key] = value

    def end_headers(self):
        pass


class FakeCommand:
    """Stands in for a StreamingCommand with canned output."""
    def __init__(self, lines, error=None):
        self.argv = ["nerdctl", "pull", "alpine"]
        self._lines = lines
        self._error = error
        self.exited = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.exited = True

    def lines(self):
        return iter(self._lines)

    def wait(self):
        if self._error is not None:
            raise self._error


def dechunk(data: bytes) -> bytes:
    body = b""
    while data:
        size_line, _, data = data.partition(b"\r\n")
        size = int(size_line, 16)
        if size == 0:
            break
        body += data[:size]
        data = data[size + 2:]
    return body


def messages(handler):
    return [json.loads(line) for line in dechunk(handler.wfile.getvalue()).splitlines()]


def test_frame_header():
    assert frame(STDOUT, b"hello\n") == b"\x01\x00\x00\x00\x00\x00\x00\x06hello\n"
    assert frame(STDERR, b"") == b"\x02\x00\x00\x00\x00\x00\x00\x00"
    assert len(frame(STDOUT, b"x" * 70000)) == 8 + 70000
    assert frame(STDOUT, b"x" * 70000)[4:8] == (70000).to_bytes(4, "big")


@pytest.mark.parametrize("version,expected", [
    ("v1.43", MULTIPLEXED_STREAM), ("1.42", MULTIPLEXED_STREAM),
    ("v1.41", RAW_STREAM), ("v1.24", RAW_STREAM),
])
def test_log_content_type(version, expected):
    assert log_content_type(version) == expected


def test_json_stream_writer():
    handler = FakeHandler()
    writer = JSONStreamWriter(ResponseWriter(handler, "POST"))
    assert not writer.started
    writer.write_line("")
    assert not writer.started
    writer.write_line("#1 [internal] load build definition")
    writer.write_error("boom")
    writer.close()
    assert handler.status == 200
    assert handler.headers["Content-Type"] == "application/json"
    assert messages(handler) == [
        {"stream": "#1 [internal] load build definition\n"},
        {"errorDetail": {"message": "boom"}, "error": "boom"},
    ]


def test_stream_command_success():
    handler = FakeHandler()
    command = FakeCommand(["latest: Pulling from library/alpine", "Status: Downloaded"])
    stream_command(ResponseWriter(handler, "POST"), command)
    assert command.exited
    assert [m["stream"] for m in messages(handler)] == [
        "latest: Pulling from library/alpine\n", "Status: Downloaded\n",
    ]


def test_stream_command_silent_success_sends_empty_stream():
    handler = FakeHandler()
    stream_command(ResponseWriter(handler, "POST"), FakeCommand([]))
    assert handler.status == 200
    assert handler.wfile.getvalue() == b"0\r\n\r\n"


def test_stream_command_fails_before_output():
    handler = FakeHandler()
    response = ResponseWriter(handler, "POST")
    error = CommandError(["nerdctl", "pull", "nope"], 1, "pull access denied")
    with pytest.raises(CommandError):
        stream_command(response, FakeCommand([], error))
    assert not response.headers_sent


def test_stream_command_fails_after_output():
    handler = FakeHandler()
    error = CommandError(["nerdctl", "push", "app"], 1, "unauthorized")
    stream_command(ResponseWriter(handler, "POST"), FakeCommand(["pushing layer"], error))
    assert messages(handler) == [
        {"stream": "pushing layer\n"},
        {"errorDetail": {"message": "unauthorized"}, "error": "unauthorized"},
    ]


def test_log_frame_writer():
    handler = FakeHandler()
    writer = LogFrameWriter(ResponseWriter(handler, "GET"), "v1.41")
    writer.write(STDOUT, "ready")
    writer.write(STDERR, "warn")
    writer.close()
    assert handler.headers["Content-Type"] == RAW_STREAM
    assert dechunk(handler.wfile.getvalue()) == frame(STDOUT, b"ready\n") + frame(STDERR, b"warn\n")
