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
The image capability: what a test dependency definition provides, plus the
post-start command and extra-host models it relies on.
"""
import ipaddress
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .ports import ContainerState
from .wait_for import Nothing, WaitFor

# Literal the engine resolves to the host's gateway address.
HOST_GATEWAY = "host-gateway"

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class ImageArgs(ABC):
    """
    Arguments passed to the container command. Implementations turn themselves
    into the list of strings handed to the engine.
    """

    @abstractmethod
    def into_iterator(self) -> Iterator[str]:
        """Yield the command arguments in order."""


@dataclass(frozen=True)
class NoArgs(ImageArgs):
    """Default arguments: none."""

    def into_iterator(self) -> Iterator[str]:
        return iter(())


def image_args_to_list(args: Any) -> List[str]:
    """
    Flatten an image's arguments into a list of strings.

    Accepts ``ImageArgs`` implementations, ``None`` and plain sequences of strings.
    """
    if args is None:
        return []
    if isinstance(args, ImageArgs):
        return list(args.into_iterator())
    if isinstance(args, str):
        return [args]
    return [str(a) for a in args]


@dataclass(frozen=True)
class Host:
    """
    Target of an extra-host alias: an IP address or the host gateway.
    """

    address: Optional[IpAddress] = None

    @classmethod
    def addr(cls, address: Union[str, IpAddress]) -> "Host":
        return cls(address=ipaddress.ip_address(address))

    @classmethod
    def host_gateway(cls) -> "Host":
        return cls(address=None)

    @classmethod
    def parse(cls, value: Union["Host", str, IpAddress]) -> "Host":
        """
        Coerce an address string, ``host-gateway`` or an IP object into a Host.

        :raises ValueError: If the value is neither the gateway literal nor an IP.
        """
        if isinstance(value, Host):
            return value
        if value == HOST_GATEWAY:
            return cls.host_gateway()
        return cls.addr(value)

    @property
    def is_host_gateway(self) -> bool:
        return self.address is None

    def __str__(self) -> str:
        if self.address is None:
            return HOST_GATEWAY
        return str(self.address)


class ExecCommand(BaseModel):
    """
    A command run inside a started container.

    ``cmd_ready_condition`` is checked against the command's own output;
    ``container_ready_conditions`` are checked against the container afterwards.
    """

    model_config = ConfigDict(frozen=True)

    cmd: List[str] = Field(default_factory=list)
    cmd_ready_condition: WaitFor = Field(default_factory=Nothing)
    container_ready_conditions: List[WaitFor] = Field(default_factory=list)

    @classmethod
    def new(cls, cmd: Iterable[str]) -> "ExecCommand":
        return cls(cmd=list(cmd))

    def with_cmd_ready_condition(self, condition: WaitFor) -> "ExecCommand":
        return self.model_copy(update={"cmd_ready_condition": condition})

    def with_container_ready_conditions(
        self, conditions: Iterable[WaitFor]
    ) -> "ExecCommand":
        return self.model_copy(update={"container_ready_conditions": list(conditions)})


class Image(ABC):
    """
    A container image usable as a test dependency.

    Implementations should describe a configuration that works out of the box:
    starting the image with its defaults must give a usable container. Only
    expose options that make sense for integration testing.
    """

    @abstractmethod
    def name(self) -> str:
        """Image name to pull, e.g. ``postgres`` or ``myorg/service``."""

    @abstractmethod
    def tag(self) -> str:
        """
        Image tag. Prefer a tag that does not move (not ``latest``) so tests
        do not break when the upstream image changes.
        """

    @abstractmethod
    def ready_conditions(self) -> List[WaitFor]:
        """
        Conditions to meet, in order, before a started container counts as ready.
        An empty list means ready as soon as it has started.
        """

    def default_args(self) -> Any:
        """Arguments used when none are supplied to the overlay."""
        return NoArgs()

    def env_vars(self) -> Iterator[Tuple[str, str]]:
        return iter(())

    def volumes(self) -> Iterator[Tuple[str, str]]:
        return iter(())

    def entrypoint(self) -> Optional[str]:
        return None

    def expose_ports(self) -> List[int]:
        """
        Ports to publish in addition to the ones declared in the image metadata,
        for images with no EXPOSE instruction.
        """
        return []

    def exec_after_start(self, state: ContainerState) -> List[ExecCommand]:
        """
        Commands to run once the container has started, e.g. to reconfigure it
        with a host port only known after start.
        """
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name()}:{self.tag()})"
