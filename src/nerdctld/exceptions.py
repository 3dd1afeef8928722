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
Exceptions raised while translating Docker API requests into CLI calls.

Every exception carries the HTTP status the router answers with, so handlers
can raise and let the router turn the failure into a response.
"""
from typing import List, Optional


class NerdctldError(Exception):
    """Base nerdctld exception"""

    status_code = 500


class ConfigError(NerdctldError):
    """Invalid server configuration, fatal at startup"""


class BadRequestError(NerdctldError):
    """Malformed client input"""

    status_code = 400


class NotFoundError(NerdctldError):
    """The requested image, container, volume or network does not exist"""

    status_code = 404


class MethodNotAllowed(NerdctldError):
    """Known path, unsupported HTTP method"""

    status_code = 405


class NotImplementedByServer(NerdctldError):
    """Route outside the supported Docker API surface"""

    status_code = 501


class OutputParseError(NerdctldError):
    """CLI output did not have the expected format"""


class CommandError(NerdctldError):
    """
    An external command failed to start or exited with a non-zero status.
    """

    NOT_FOUND_MARKERS = ("not found", "no such", "does not exist")

    def __init__(self, argv: List[str], returncode: int, stderr: str = "",
                 message: Optional[str] = None):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr.strip()
        if message is None:
            message = self.stderr or f"{argv[0]} exited with status {returncode}"
        super().__init__(message)

    @property
    def status_code(self) -> int:
        lowered = self.stderr.lower()
        if any(marker in lowered for marker in self.NOT_FOUND_MARKERS):
            return 404
        return 500
