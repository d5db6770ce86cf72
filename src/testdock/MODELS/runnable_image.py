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
Configuration overlay: user overrides layered on top of an image's defaults.

Every ``with_*`` call returns a new overlay and leaves the original untouched,
so one base overlay can be used to start any number of containers.
"""
import dataclasses
from dataclasses import dataclass, field
from itertools import chain
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .image import ExecCommand, Host, Image, image_args_to_list
from .ports import ContainerState, Port
from .wait_for import WaitFor


def _insert_sorted(mapping: Dict[str, Any], key: str, value: Any) -> Dict[str, Any]:
    """Copy of ``mapping`` with ``key`` set, iterating in key order."""
    updated = dict(mapping)
    updated[key] = value
    return dict(sorted(updated.items()))


class RunSpec(BaseModel):
    """
    Fully resolved run configuration, as handed to a container runner.
    """

    model_config = ConfigDict(frozen=True)

    descriptor: str
    container_name: Optional[str] = None
    network: Optional[str] = None
    entrypoint: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env_vars: List[Tuple[str, str]] = Field(default_factory=list)
    volumes: List[Tuple[str, str]] = Field(default_factory=list)
    hosts: List[Tuple[str, str]] = Field(default_factory=list)
    ports: Optional[List[Port]] = None
    expose_ports: List[int] = Field(default_factory=list)
    privileged: bool = False
    shm_size: Optional[int] = None
    ready_conditions: List[WaitFor] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """JSON/YAML friendly representation."""
        data = self.model_dump(mode="json")
        if self.ports is not None:
            data["ports"] = [str(p) for p in self.ports]
        return data


@dataclass(frozen=True)
class RunnableImage:
    """
    An image together with its arguments and the overrides applied by the caller.

    Overlay env vars and volumes are appended after the image's own entries;
    entries with the same key in both sources are not deduplicated here and
    are left to the engine's apply order.
    """

    _image: Image
    _image_args: Any = None
    _image_name: Optional[str] = None
    _image_tag: Optional[str] = None
    _container_name: Optional[str] = None
    _network: Optional[str] = None
    _env_vars: Dict[str, str] = field(default_factory=dict)
    _hosts: Dict[str, Host] = field(default_factory=dict)
    _volumes: Dict[str, str] = field(default_factory=dict)
    _ports: Optional[Tuple[Port, ...]] = None
    _privileged: bool = False
    _shm_size: Optional[int] = None

    @classmethod
    def from_image(cls, image: Image, args: Any = None) -> "RunnableImage":
        """
        Wrap an image. Without ``args`` the image's default arguments are used.
        """
        if args is None:
            args = image.default_args()
        return cls(_image=image, _image_args=args)

    def _replace(self, **changes: Any) -> "RunnableImage":
        # Maps are always copied so derived overlays never share them.
        values: Dict[str, Any] = {
            "_env_vars": dict(self._env_vars),
            "_hosts": dict(self._hosts),
            "_volumes": dict(self._volumes),
        }
        values.update(changes)
        return dataclasses.replace(self, **values)

    # Accessors

    def image(self) -> Image:
        return self._image

    def args(self) -> Any:
        return self._image_args

    def network(self) -> Optional[str]:
        return self._network

    def container_name(self) -> Optional[str]:
        return self._container_name

    def env_vars(self) -> Iterator[Tuple[str, str]]:
        return chain(self._image.env_vars(), self._env_vars.items())

    def hosts(self) -> Iterator[Tuple[str, Host]]:
        return iter(list(self._hosts.items()))

    def volumes(self) -> Iterator[Tuple[str, str]]:
        return chain(self._image.volumes(), self._volumes.items())

    def ports(self) -> Optional[List[Port]]:
        """
        Explicit port requests. ``None`` means every exposed port is auto-mapped.
        """
        if self._ports is None:
            return None
        return list(self._ports)

    def privileged(self) -> bool:
        return self._privileged

    def shm_size(self) -> Optional[int]:
        """Shared memory size in bytes."""
        return self._shm_size

    def entrypoint(self) -> Optional[str]:
        return self._image.entrypoint()

    def descriptor(self) -> str:
        name = self._image_name if self._image_name is not None else self._image.name()
        tag = self._image_tag if self._image_tag is not None else self._image.tag()
        return f"{name}:{tag}"

    def ready_conditions(self) -> List[WaitFor]:
        return self._image.ready_conditions()

    def expose_ports(self) -> List[int]:
        return self._image.expose_ports()

    def exec_after_start(self, state: ContainerState) -> List[ExecCommand]:
        return self._image.exec_after_start(state)

    # Overrides

    def with_args(self, args: Any) -> "RunnableImage":
        return self._replace(_image_args=args)

    def with_name(self, name: str) -> "RunnableImage":
        """
        Override the fully qualified image name (``{domain}/{owner}/{image}``),
        e.g. to pull from a custom registry or owner.
        """
        if not name:
            raise ValueError("Image name must not be empty")
        return self._replace(_image_name=name)

    def with_tag(self, tag: str) -> "RunnableImage":
        """
        Override the tag. Nothing guarantees the image still works with it.
        """
        if not tag:
            raise ValueError("Image tag must not be empty")
        return self._replace(_image_tag=tag)

    def with_container_name(self, name: str) -> "RunnableImage":
        return self._replace(_container_name=name)

    def with_network(self, network: str) -> "RunnableImage":
        return self._replace(_network=network)

    def with_env_var(self, env_var: Tuple[str, str]) -> "RunnableImage":
        key, value = env_var
        return self._replace(_env_vars=_insert_sorted(self._env_vars, str(key), str(value)))

    def with_host(self, key: str, value: Union[Host, str]) -> "RunnableImage":
        return self._replace(_hosts=_insert_sorted(self._hosts, key, Host.parse(value)))

    def with_volume(self, volume: Tuple[str, str]) -> "RunnableImage":
        source, dest = volume
        return self._replace(_volumes=_insert_sorted(self._volumes, str(source), str(dest)))

    def with_mapped_port(self, port: Union[Port, Tuple[int, int]]) -> "RunnableImage":
        ports = tuple(self._ports or ()) + (Port.of(port),)
        return self._replace(_ports=ports)

    def with_privileged(self, privileged: bool) -> "RunnableImage":
        return self._replace(_privileged=privileged)

    def with_shm_size(self, size: int) -> "RunnableImage":
        if size < 0:
            raise ValueError(f"Shared memory size must not be negative, got {size}")
        return self._replace(_shm_size=size)

    def to_run_spec(self) -> RunSpec:
        """
        Resolve the overlay into the configuration a runner needs.
        """
        return RunSpec(
            descriptor=self.descriptor(),
            container_name=self._container_name,
            network=self._network,
            entrypoint=self.entrypoint(),
            args=image_args_to_list(self._image_args),
            env_vars=list(self.env_vars()),
            volumes=list(self.volumes()),
            hosts=[(alias, str(host)) for alias, host in self.hosts()],
            ports=self.ports(),
            expose_ports=self.expose_ports(),
            privileged=self._privileged,
            shm_size=self._shm_size,
            ready_conditions=self.ready_conditions(),
        )

    def __repr__(self) -> str:
        return f"RunnableImage({self.descriptor()})"
