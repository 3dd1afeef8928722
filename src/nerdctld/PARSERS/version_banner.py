"""
Parsers for the ``--version`` banners of nerdctl and the engine components,
and a comparator for dotted version strings.
"""
import re
from typing import Dict, Optional, Tuple

from ..exceptions import OutputParseError

VersionDetails = Tuple[str, Optional[Dict[str, str]]]

_RUNC_COMMIT = re.compile(r'^commit:\s*(\S+)', re.MULTILINE)
_SHORT_HASH = re.compile(r'-g([0-9a-f]{7,40})$')


def _strip_v(version: str) -> str:
    return version[1:] if version.startswith("v") else version


def vercmp(v1: str, v2: str) -> int:
    """
    Compares two dotted version strings segment by segment as integers.

    Missing trailing segments count as 0 and a leading ``v`` is ignored, so
    ``vercmp("1.35", "1.24") == 1`` and ``vercmp("1.4", "1.40") == -1``
    (4 < 40; this is not a decimal comparison).

    :return: -1 if v1 < v2, 1 if v1 > v2, 0 otherwise.
    """
    left = _strip_v(v1).split(".")
    right = _strip_v(v2).split(".")
    for i in range(max(len(left), len(right))):
        a = _segment(left, i)
        b = _segment(right, i)
        if a > b:
            return 1
        if b > a:
            return -1
    return 0


def _segment(parts, index: int) -> int:
    if index >= len(parts):
        return 0
    try:
        return int(parts[index])
    except ValueError:
        return 0


def parse_nerdctl_banner(banner: str) -> str:
    """
    ``nerdctl version 1.7.6`` -> ``1.7.6``
    """
    text = banner.strip()
    prefix = "nerdctl version "
    if not text.startswith(prefix):
        raise OutputParseError(f"unexpected nerdctl version banner {text!r}")
    return _strip_v(text[len(prefix):].strip())


def parse_module_banner(banner: str, tool: str) -> VersionDetails:
    """
    Parses ``<tool> <module path> <version> <commit>`` banners, as printed by
    containerd and buildkitd.

    ``containerd github.com/containerd/containerd v1.7.13 7c3aca7`` gives
    ``("1.7.13", {"GitCommit": "7c3aca7"})``. A banner without all four
    fields is returned as-is with no details.
    """
    text = banner.strip()
    fields = text.split(" ", 3)
    if len(fields) == 4 and fields[0] == tool:
        return _strip_v(fields[2]), {"GitCommit": fields[3]}
    if not text:
        raise OutputParseError(f"empty {tool} version banner")
    return text, None


def parse_runc_banner(banner: str) -> VersionDetails:
    """
    Parses::

        runc version 1.1.12
        commit: v1.1.12-0-g51d5e94
        spec: 1.0.2-dev

    into ``("1.1.12", {"GitCommit": "51d5e94"})``. The commit is reduced to
    the short hash following ``-g`` when ``git describe`` output is given.
    """
    lines = banner.strip().splitlines()
    prefix = "runc version "
    if not lines or not lines[0].startswith(prefix):
        raise OutputParseError(f"unexpected runc version banner {banner!r}")
    version = _strip_v(lines[0][len(prefix):].strip())
    match = _RUNC_COMMIT.search(banner)
    if not match:
        return version, None
    commit = match.group(1)
    short = _SHORT_HASH.search(commit)
    if short:
        commit = short.group(1)
    return version, {"GitCommit": commit}


def parse_tini_banner(banner: str) -> VersionDetails:
    """
    ``tini version 0.19.0 - git.de40ad0`` -> ``("0.19.0", {"GitCommit": "de40ad0"})``
    """
    text = banner.strip()
    prefix = "tini version "
    if not text.startswith(prefix):
        raise OutputParseError(f"unexpected tini version banner {text!r}")
    version, _, rest = text[len(prefix):].partition(" - ")
    commit = rest.strip()
    if commit.startswith("git."):
        commit = commit[len("git."):]
    return _strip_v(version.strip()), ({"GitCommit": commit} if commit else None)
