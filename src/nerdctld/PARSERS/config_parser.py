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
Loading of the daemon configuration from a YAML file, the environment and
command line overrides.
"""
import os
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..exceptions import ConfigError
from ..MODELS.server_config import ServerConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator

# Environment variable -> ServerConfig field
ENVIRONMENT_KEYS = {
    "NERDCTLD_ADDR": "address",
    "NERDCTLD_DEBUG": "debug",
    "NERDCTLD_NERDCTL": "nerdctl_path",
    "NERDCTLD_BUILDCTL": "buildctl_path",
    "BUILDKIT_HOST": "buildkit_host",
    "CONTAINERD_NAMESPACE": "namespace",
}

class ConfigParser:
    """
    Builds the immutable ServerConfig.

    Precedence, highest first: explicit overrides (command line), environment
    variables (including a ``.env`` file), the YAML config file, defaults.
    """
    def __init__(self, environ: Optional[Mapping[str, str]] = None,
                 dotenv_path: Optional[str] = None):
        """
        :param environ: Environment to read, ``os.environ`` by default.
        :param dotenv_path: ``.env`` file to merge into ``os.environ`` first.
        """
        if environ is None:
            load_dotenv(dotenv_path, override=False)
            environ = os.environ
        self.environ = environ

    def parse_file(self, config_path: str) -> Dict[str, Any]:
        """
        Reads a YAML config file after ``${VAR}`` interpolation.

        :param config_path: Path to the file.
        :return: The settings found in the file.
        """
        try:
            with open(config_path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigError(f"cannot read config file {config_path}: {e.strerror}") from None
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> Dict[str, Any]:
        content = EnvironmentInterpolator.interpolate(content, self.environ)
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid config file: {e}") from None
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("config file must contain a mapping")
        unknown = set(data) - set(ServerConfig.model_fields)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")
        return data

    def from_environment(self) -> Dict[str, Any]:
        return {
            field: self.environ[key]
            for key, field in ENVIRONMENT_KEYS.items()
            if self.environ.get(key)
        }

    def load(self, config_path: Optional[str] = None,
             overrides: Optional[Dict[str, Any]] = None) -> ServerConfig:
        """
        Merges every configuration source.

        :param config_path: Optional YAML file.
        :param overrides: Values given on the command line; ``None`` entries are ignored.
        :return: The validated configuration.
        :raises ConfigError: On any invalid source or value.
        """
        settings: Dict[str, Any] = {}
        if config_path:
            settings.update(self.parse_file(config_path))
        settings.update(self.from_environment())
        settings.update({k: v for k, v in (overrides or {}).items() if v is not None})
        try:
            return ServerConfig(**settings)
        except ValidationError as e:
            first = e.errors()[0]
            raise ConfigError(f"invalid setting {first['loc'][0]}: {first['msg']}") from None
