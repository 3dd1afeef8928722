import io
import json
import os
import struct
import tarfile
import time


def context_tar(files, gzip=False):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if gzip else "w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def chunks(data, size=1000):
    for start in range(0, len(data), size):
        yield data[start:start + size]


def json_lines(body):
    return [json.loads(line) for line in body.splitlines() if line.strip()]


def frames(body):
    result = []
    while body:
        stream_type, length = struct.unpack(">BxxxL", body[:8])
        result.append((stream_type, body[8:8 + length]))
        body = body[8 + length:]
    return result


def test_ping(engine):
    status, headers, body = engine.request("GET", "/_ping")
    assert status == 200
    assert body == b"OK"
    assert headers["API-Version"] == "1.24"
    assert headers["Cache-Control"] == "no-cache, no-store, must-revalidate"

    status, headers, body = engine.request("HEAD", "/v1.43/_ping")
    assert status == 200
    assert body == b""
    assert headers["API-Version"] == "1.43"


def test_version_unversioned_path(engine):
    status, headers, body = engine.request("GET", "/version")
    assert status == 200
    assert headers["Content-Type"] == "application/json"
    doc = json.loads(body)
    assert doc["Version"] == "1.7.6"
    assert doc["ApiVersion"] == "1.43"
    assert doc["MinAPIVersion"] == "1.24"
    assert [c["Name"] for c in doc["Components"]] == ["nerdctl", "containerd"]


def test_version_legacy_shape(engine):
    status, _, body = engine.request("GET", "/v1.24/version")
    assert status == 200
    doc = json.loads(body)
    assert "Components" not in doc
    assert "Platform" not in doc


def test_info(engine):
    status, _, body = engine.request("GET", "/v1.43/info")
    assert status == 200
    doc = json.loads(body)
    assert doc["Containers"] == 1
    assert doc["ContainersRunning"] == 1
    assert doc["Images"] == 1
    assert doc["ContainerdCommit"]["ID"] == "7c3aca7a610df76212171d200ca3811ff6096eb8"
    assert "ps -a --format {{json .}}" in engine.calls()


def test_image_list(engine):
    status, _, body = engine.request("GET", '/v1.43/images/json?filters={"reference":["alpine"]}')
    assert status == 200
    images = json.loads(body)
    assert images[0]["RepoTags"] == ["alpine:latest"]
    assert "images --filter reference=alpine --format {{json .}}" in engine.calls()


def test_system_df_without_buildkit(engine):
    status, _, body = engine.request("GET", "/v1.43/system/df")
    assert status == 200
    doc = json.loads(body)
    assert doc["BuildCache"] == []
    assert doc["Containers"][0]["Names"] == ["/web"]
    assert doc["Volumes"][0]["UsageData"]["Size"] == 4096


def test_missing_image_is_404(engine):
    status, headers, body = engine.request("GET", "/v1.43/images/nope/json")
    assert status == 404
    assert headers["Content-Type"].startswith("text/plain")
    assert b"no such image: nope" in body


def test_unsupported_routes(engine):
    status, _, _ = engine.request("GET", "/v1.43/swarm")
    assert status == 501
    status, _, _ = engine.request("DELETE", "/v1.43/info")
    assert status == 405


def test_keep_alive_after_error(engine):
    conn = engine.connect()
    try:
        conn.request("GET", "/v1.43/images/nope/json")
        first = conn.getresponse()
        first.read()
        conn.request("GET", "/_ping")
        second = conn.getresponse()
        assert first.status == 404
        assert second.status == 200
        assert second.read() == b"OK"
    finally:
        conn.close()


def test_build_streams_output_and_removes_context(engine):
    archive = context_tar({"Dockerfile": b"FROM alpine\nRUN echo hi\n"}, gzip=True)
    status, headers, body = engine.request(
        "POST", "/v1.43/build?t=myimage:latest&nocache=1",
        body=chunks(archive), headers={"Content-Type": "application/x-tar"},
    )
    assert status == 200
    assert headers["Transfer-Encoding"] == "chunked"
    assert json_lines(body) == [
        {"stream": "#1 building\n"},
        {"stream": "FROM alpine\n"},
        {"stream": "RUN echo hi\n"},
    ]

    build_call = [call for call in engine.calls() if call.startswith("build ")][0]
    with open(engine.context_path) as f:
        context_dir = f.read().strip()
    assert build_call == f"build --progress=plain -t myimage:latest --no-cache {context_dir}"
    for _ in range(50):
        if not os.path.exists(context_dir):
            break
        time.sleep(0.1)
    assert not os.path.exists(context_dir)


def test_build_rejects_traversal(engine):
    archive = context_tar({"../escape": b"x"})
    status, _, body = engine.request(
        "POST", "/v1.43/build", body=archive, headers={"Content-Type": "application/x-tar"},
    )
    assert status == 400
    assert b"unsafe path" in body
    assert not [call for call in engine.calls() if call.startswith("build ")]


def test_load_requires_tar(engine):
    status, _, body = engine.request(
        "POST", "/v1.43/images/load", body=b"{}", headers={"Content-Type": "application/json"},
    )
    assert status == 400
    assert body == b"application/json not tar\n"


def test_load(engine):
    status, _, body = engine.request(
        "POST", "/v1.43/images/load", body=context_tar({"manifest.json": b"[]"}),
        headers={"Content-Type": "application/x-tar"},
    )
    assert status == 200
    assert json_lines(body) == [{"stream": "Loaded image: alpine:latest\n"}]


def test_save_streams_archive(engine):
    status, headers, body = engine.request("GET", "/v1.43/images/get?names=alpine")
    assert status == 200
    assert headers["Content-Type"] == "application/x-tar"
    assert body == b"FAKE-TAR-alpine"


def test_save_requires_names(engine):
    status, _, _ = engine.request("GET", "/v1.43/images/get")
    assert status == 400


def test_save_names_are_never_options(engine):
    status, _, body = engine.request("GET", "/v1.43/images/get?names=--output%3D%2Ftmp%2Fx")
    assert status == 200
    assert body == b"FAKE-TAR---output=/tmp/x"
    assert "save -- --output=/tmp/x" in engine.calls()


def test_build_rejects_dockerfile_outside_context(engine):
    archive = context_tar({"Dockerfile": b"FROM alpine\n"})
    status, _, body = engine.request(
        "POST", "/v1.43/build?dockerfile=..%2F..%2Fetc%2Fpasswd", body=archive,
        headers={"Content-Type": "application/x-tar"},
    )
    assert status == 400
    assert b"dockerfile outside build context" in body
    assert not [call for call in engine.calls() if call.startswith("build ")]


def test_logs_are_multiplexed(engine):
    status, headers, body = engine.request("GET", "/v1.43/containers/web/logs?stdout=1&stderr=1&tail=10")
    assert status == 200
    assert headers["Content-Type"] == "application/vnd.docker.multiplexed-stream"
    assert frames(body) == [(1, b"hello from stdout\n"), (2, b"hello from stderr\n")]
    assert "logs --tail 10 -- web" in engine.calls()


def test_logs_stdout_only(engine):
    status, headers, body = engine.request("GET", "/v1.41/containers/web/logs?stdout=1")
    assert status == 200
    assert headers["Content-Type"] == "application/vnd.docker.raw-stream"
    assert frames(body) == [(1, b"hello from stdout\n")]
