# Copyright 2024 The testdock Authors
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
Port mapping models: requested bindings before start and resolved host ports after.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import PortNotMappedError

# Local port value asking the engine to pick a free host port.
AUTO_PORT = 0


class Port(BaseModel):
    """
    Represents a port mapping between a local port and the internal port of a container.
    """

    model_config = ConfigDict(frozen=True)

    local: int = Field(ge=0, le=65535)
    internal: int = Field(ge=1, le=65535)

    @classmethod
    def of(cls, value: Union["Port", Tuple[int, int]]) -> "Port":
        """
        Coerce a ``(local, internal)`` tuple into a Port.
        """
        if isinstance(value, Port):
            return value
        local, internal = value
        return cls(local=local, internal=internal)

    @classmethod
    def auto(cls, internal: int) -> "Port":
        """Port bound to an engine-assigned host port."""
        return cls(local=AUTO_PORT, internal=internal)

    @property
    def is_auto(self) -> bool:
        return self.local == AUTO_PORT

    def __str__(self) -> str:
        return f"{self.local}:{self.internal}"


@dataclass(frozen=True)
class Ports:
    """
    Host ports assigned to a started container, keyed by internal port.
    """

    ipv4: Dict[int, int] = field(default_factory=dict)
    ipv6: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def from_inspect(cls, port_bindings: Optional[Mapping[str, Any]]) -> "Ports":
        """
        Build the mapping from an engine inspect payload (``NetworkSettings.Ports``).

        Example payload::

            {"80/tcp": [{"HostIp": "0.0.0.0", "HostPort": "32768"},
                        {"HostIp": "::", "HostPort": "32768"}],
             "443/tcp": None}

        Exposed but unpublished ports (``None`` bindings) are skipped. The first
        binding found for each address family wins.

        Args:
            port_bindings: The ``Ports`` section of an inspect response.

        Returns:
            Parsed Ports object.
        """
        ipv4: Dict[int, int] = {}
        ipv6: Dict[int, int] = {}

        for key, bindings in (port_bindings or {}).items():
            if not bindings:
                continue
            internal = int(str(key).split("/", 1)[0])

            for binding in bindings:
                host_port = binding.get("HostPort")
                if not host_port:
                    continue
                host_ip = binding.get("HostIp") or ""
                # IPv6 addresses are the only ones carrying a colon
                target = ipv6 if ":" in host_ip else ipv4
                target.setdefault(internal, int(host_port))

        return cls(ipv4=ipv4, ipv6=ipv6)

    def map_to_host_port_ipv4(self, internal_port: int) -> Optional[int]:
        return self.ipv4.get(internal_port)

    def map_to_host_port_ipv6(self, internal_port: int) -> Optional[int]:
        return self.ipv6.get(internal_port)

    @property
    def internal_ports(self) -> List[int]:
        return sorted(set(self.ipv4) | set(self.ipv6))


class ContainerState:
    """
    Runtime state of a started container, handed to ``Image.exec_after_start``.
    """

    def __init__(self, ports: Optional[Ports] = None):
        self._ports = ports or Ports()

    @property
    def ports(self) -> Ports:
        return self._ports

    def host_port_ipv4(self, internal_port: int) -> int:
        """
        Host port bound on IPv4 for ``internal_port``.

        :raises PortNotMappedError: If the port was never exposed or requested.
        """
        host_port = self._ports.map_to_host_port_ipv4(internal_port)
        if host_port is None:
            raise PortNotMappedError(internal_port, "IPv4")
        return host_port

    def host_port_ipv6(self, internal_port: int) -> int:
        """
        Host port bound on IPv6 for ``internal_port``.

        :raises PortNotMappedError: If the port was never exposed or requested.
        """
        host_port = self._ports.map_to_host_port_ipv6(internal_port)
        if host_port is None:
            raise PortNotMappedError(internal_port, "IPv6")
        return host_port

    def __repr__(self) -> str:
        return f"ContainerState(ports={self._ports!r})"
