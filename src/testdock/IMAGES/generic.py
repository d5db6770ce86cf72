"""
A configurable image for ad-hoc test dependencies.
"""
import dataclasses
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from ..MODELS.image import Image
from ..MODELS.wait_for import WaitFor


@dataclass(frozen=True)
class GenericImage(Image):
    """
    Image defined entirely by its builder calls, for dependencies that have no
    dedicated ``Image`` implementation. Its arguments are a list of strings.
    """

    image_name: str
    image_tag: str
    wait_for: Tuple[WaitFor, ...] = ()
    env: Tuple[Tuple[str, str], ...] = ()
    mounts: Tuple[Tuple[str, str], ...] = ()
    entrypoint_override: Optional[str] = None
    exposed_ports: Tuple[int, ...] = field(default=())

    def __post_init__(self):
        if not self.image_name or not self.image_tag:
            raise ValueError("GenericImage needs a non-empty name and tag")

    def with_wait_for(self, condition: WaitFor) -> "GenericImage":
        return dataclasses.replace(self, wait_for=self.wait_for + (condition,))

    def with_env_var(self, key: str, value: str) -> "GenericImage":
        env = dict(self.env)
        env[key] = value
        return dataclasses.replace(self, env=tuple(env.items()))

    def with_volume(self, source: str, dest: str) -> "GenericImage":
        mounts = dict(self.mounts)
        mounts[source] = dest
        return dataclasses.replace(self, mounts=tuple(mounts.items()))

    def with_entrypoint(self, entrypoint: str) -> "GenericImage":
        return dataclasses.replace(self, entrypoint_override=entrypoint)

    def with_exposed_port(self, port: int) -> "GenericImage":
        if port in self.exposed_ports:
            return self
        return dataclasses.replace(self, exposed_ports=self.exposed_ports + (port,))

    def name(self) -> str:
        return self.image_name

    def tag(self) -> str:
        return self.image_tag

    def ready_conditions(self) -> List[WaitFor]:
        return list(self.wait_for)

    def default_args(self) -> List[str]:
        return []

    def env_vars(self) -> Iterator[Tuple[str, str]]:
        return iter(self.env)

    def volumes(self) -> Iterator[Tuple[str, str]]:
        return iter(self.mounts)

    def entrypoint(self) -> Optional[str]:
        return self.entrypoint_override

    def expose_ports(self) -> List[int]:
        return list(self.exposed_ports)
