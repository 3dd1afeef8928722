"""
Models for the daemon configuration.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from ..exceptions import ConfigError

LISTEN_SCHEMES = ("unix", "tcp", "fd")

class ListenAddress(BaseModel):
    """
    A ``scheme://target`` listen address.
    """
    model_config = ConfigDict(frozen=True)

    scheme: str
    target: str = ""

    @classmethod
    def parse(cls, address: str) -> "ListenAddress":
        """
        Parses ``unix://path``, ``tcp://host:port`` or ``fd://[N]``.

        :param address: The configured address.
        :return: The parsed address.
        :raises ConfigError: On an unknown scheme or a malformed target.
        """
        scheme, sep, target = address.partition("://")
        if not sep or scheme not in LISTEN_SCHEMES:
            raise ConfigError(f"unsupported listen address {address!r}, "
                              "expected unix://, tcp:// or fd://")
        if scheme == "unix" and not target:
            raise ConfigError("unix:// address needs a socket path")
        if scheme == "tcp":
            host, colon, port = target.rpartition(":")
            if not colon or not port.isdigit():
                raise ConfigError(f"tcp:// address needs host:port, got {target!r}")
        if scheme == "fd" and target and not target.isdigit():
            raise ConfigError(f"fd:// address needs a descriptor number, got {target!r}")
        return cls(scheme=scheme, target=target)

    @property
    def host_port(self):
        """(host, port) tuple of a tcp:// address."""
        host, _, port = self.target.rpartition(":")
        return host.strip("[]") or "0.0.0.0", int(port)

    def __str__(self) -> str:
        return f"{self.scheme}://{self.target}"


class ServerConfig(BaseModel):
    """
    Immutable daemon configuration, built once at startup and handed to the
    server.
    """
    model_config = ConfigDict(frozen=True)

    address: str = "unix://nerdctl.sock"
    debug: bool = False
    nerdctl_path: str = "nerdctl"
    buildctl_path: str = "buildctl"
    buildkit_host: Optional[str] = None
    namespace: Optional[str] = None

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        ListenAddress.parse(value)
        return value

    @property
    def listen_address(self) -> ListenAddress:
        return ListenAddress.parse(self.address)
