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
Extraction of the build context uploaded with ``POST /build``.
"""
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import BinaryIO, Iterator
import tarfile

from ..exceptions import BadRequestError

logger = logging.getLogger(__name__)

TAR_CONTENT_TYPES = ("application/tar", "application/x-tar")


def check_tar_content_type(content_type: str) -> None:
    """
    :raises BadRequestError: Unless the request body is declared as a tar archive.
    """
    if content_type not in TAR_CONTENT_TYPES:
        raise BadRequestError(f"{content_type} not tar")


def _within(root: str, path: str) -> bool:
    return path == root or path.startswith(root + os.sep)


def safe_target(root: str, name: str) -> str:
    """
    Resolves an archive member name below ``root``.

    :param root: Real path of the extraction directory.
    :param name: Member name from the tar header.
    :return: The absolute destination path.
    :raises BadRequestError: If the name is absolute or escapes ``root``.
    """
    if name.startswith("/") or ".." in name.split("/"):
        raise BadRequestError(f"unsafe path in build context: {name}")
    target = os.path.join(root, name)
    if not _within(root, os.path.realpath(os.path.dirname(target))):
        raise BadRequestError(f"unsafe path in build context: {name}")
    return target


def context_file(context_dir: str, name: str) -> str:
    """
    :return: Path of ``name`` inside the extracted context.
    :raises BadRequestError: If ``name`` points outside ``context_dir``.
    """
    root = os.path.realpath(context_dir)
    path = os.path.join(root, name)
    if os.path.isabs(name) or not _within(root, os.path.realpath(path)):
        raise BadRequestError(f"dockerfile outside build context: {name}")
    return path


def extract_build_context(fileobj: BinaryIO, dest: str) -> None:
    """
    Extracts a tar stream, plain or gzip compressed, into ``dest``.

    The archive is read sequentially so the request body never needs to be
    buffered. Directories, regular files and symlinks are created; hardlinks
    and special files are skipped.

    Args:
        fileobj: The request body.
        dest: Existing, empty directory.

    Raises:
        BadRequestError: On a malformed archive or a member escaping ``dest``.
    """
    root = os.path.realpath(dest)
    try:
        # r|* detects the gzip magic (1f 8b) itself
        with tarfile.open(fileobj=fileobj, mode="r|*") as tar:
            for member in tar:
                _extract_member(tar, member, root)
    except tarfile.TarError as e:
        raise BadRequestError(f"invalid build context: {e}") from None


def _replace_entry(target: str, name: str) -> None:
    """Removes what an earlier member left at ``target``; a real directory is an error."""
    if os.path.islink(target) or os.path.isfile(target):
        os.unlink(target)
    elif os.path.lexists(target):
        raise BadRequestError(f"conflicting entry in build context: {name}")


def _extract_member(tar: tarfile.TarFile, member: tarfile.TarInfo, root: str) -> None:
    name = member.name.rstrip("/")
    if not name or name == ".":
        return
    target = safe_target(root, name)

    if member.isdir():
        if os.path.islink(target) or not os.path.isdir(target):
            _replace_entry(target, name)
            os.makedirs(target, 0o755)
    elif member.isfile():
        os.makedirs(os.path.dirname(target), 0o755, exist_ok=True)
        # never write through a link left by an earlier member
        _replace_entry(target, name)
        if not _within(root, os.path.realpath(target)):
            raise BadRequestError(f"unsafe path in build context: {name}")
        source = tar.extractfile(member)
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_EXCL | os.O_NOFOLLOW, 0o600)
        with os.fdopen(fd, "wb") as f:
            shutil.copyfileobj(source, f)
        os.chmod(target, member.mode & 0o7777)
    elif member.issym():
        link = os.path.join(os.path.dirname(target), member.linkname)
        if os.path.isabs(member.linkname) or not _within(root, os.path.realpath(link)):
            raise BadRequestError(f"unsafe symlink in build context: {name} -> {member.linkname}")
        os.makedirs(os.path.dirname(target), 0o755, exist_ok=True)
        _replace_entry(target, name)
        os.symlink(member.linkname, target)
    else:
        logger.debug("skipping %s (tar type %r)", name, member.type)


@contextmanager
def build_context(fileobj: BinaryIO) -> Iterator[str]:
    """
    Extracts the uploaded context into a fresh temporary directory and
    removes the directory when the block exits, whatever the outcome.
    """
    directory = tempfile.mkdtemp(prefix="build")
    try:
        extract_build_context(fileobj, directory)
        yield directory
    finally:
        shutil.rmtree(directory, ignore_errors=True)
