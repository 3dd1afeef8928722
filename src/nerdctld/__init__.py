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
nerdctld - Docker Engine API for nerdctl

Serves the Docker Engine HTTP API on a Unix socket and answers each request
by running nerdctl (and buildctl for the build cache), translating their
output into the JSON documents Docker clients expect.
"""

__version__ = "0.6.0"
__license__ = "Apache-2.0"

# Highest and lowest Docker Engine API versions understood by the server.
API_VERSION = "1.43"
MIN_API_VERSION = "1.24"
