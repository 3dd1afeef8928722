import pytest
from nerdctld.UTILS.image_reference import ImageReference, pull_reference, same_image

def test_parse_short_name():
    ref = ImageReference.parse("alpine")
    assert ref.registry == "docker.io"
    assert ref.repository == "library/alpine"
    assert ref.tag == "latest"
    assert ref.full_name == "docker.io/library/alpine:latest"

def test_parse_user_repository():
    ref = ImageReference.parse("myuser/app:v1")
    assert ref.full_name == "docker.io/myuser/app:v1"

def test_parse_registry_with_port():
    ref = ImageReference.parse("localhost:5000/app")
    assert ref.registry == "localhost:5000"
    assert ref.repository == "app"
    assert ref.tag == "latest"

def test_parse_digest():
    ref = ImageReference.parse("ghcr.io/org/app@sha256:abc")
    assert ref.registry == "ghcr.io"
    assert ref.tag is None
    assert ref.digest == "sha256:abc"
    assert ref.full_name == "ghcr.io/org/app@sha256:abc"

def test_parse_empty():
    with pytest.raises(ValueError):
        ImageReference.parse("")

@pytest.mark.parametrize("from_image,tag,expected", [
    ("alpine", None, "alpine"),
    ("alpine", "", "alpine"),
    ("alpine", "3.19", "alpine:3.19"),
    ("alpine", "sha256:c5b1", "alpine@sha256:c5b1"),
])
def test_pull_reference(from_image, tag, expected):
    assert pull_reference(from_image, tag) == expected

def test_same_image():
    assert same_image("alpine", "docker.io/library/alpine:latest")
    assert same_image("library/alpine:latest", "alpine:latest")
    assert not same_image("alpine:3.19", "alpine:latest")
    assert not same_image("", "alpine")
