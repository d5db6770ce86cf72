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
Parser for YAML files describing generic test dependencies.

Example::

    dependencies:
      web:
        image: simple_web_server
        tag: "1.0"
        wait_for:
          - {kind: stdout, message: "server is ready"}
          - {kind: duration, length: 2}
        ports: ["0:80"]
        hosts: {custom-host: host-gateway}
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..errors import SpecError
from ..IMAGES.generic import GenericImage
from ..MODELS.ports import Port
from ..MODELS.runnable_image import RunnableImage
from ..MODELS.wait_for import WaitFor, millis_in_env_var, wait_for_list_adapter
from ..UTILS.environment import EnvLookup, interpolate, os_environ_lookup

logger = logging.getLogger(__name__)

# Readiness entry resolved through the lookup rather than validated as a model.
ENV_MILLIS_KIND = "env_millis"


class SpecParser:
    """
    Parser for testdock dependency files.
    """

    def __init__(self, lookup: Optional[EnvLookup] = None):
        """
        Initializes the parser with the lookup used for interpolation.

        :param lookup: Source of ``${VAR}`` values. Defaults to the process environment.
        """
        self.lookup = lookup or os_environ_lookup

    def parse(self, spec_path: str) -> Dict[str, RunnableImage]:
        """
        Parses a dependency file from a path.

        :param spec_path: Path to the YAML file.
        :return: Overlays keyed by dependency name.
        """
        with open(spec_path, "r") as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> Dict[str, RunnableImage]:
        """
        Parses a dependency file from a string.

        :param content: YAML content.
        :return: Overlays keyed by dependency name.
        :raises SpecError: If the document is malformed.
        """
        try:
            content = interpolate(content, self.lookup)
        except KeyError as e:
            raise SpecError(f"Interpolation failed: {e.args[0]}") from e

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SpecError(f"Invalid YAML: {e}") from e

        if not data:
            data = {}
        if not isinstance(data, dict):
            raise SpecError("Top level of a dependency file must be a mapping")

        dependencies = data.get("dependencies") or {}
        if not isinstance(dependencies, dict):
            raise SpecError("'dependencies' must be a mapping")

        result = {}
        for name, spec in dependencies.items():
            try:
                result[name] = self._parse_dependency(name, spec)
            except SpecError:
                raise
            except (ValidationError, ValueError, TypeError, OverflowError) as e:
                raise SpecError(f"Invalid dependency '{name}': {e}") from e
            logger.debug("Parsed dependency %s -> %s", name, result[name].descriptor())
        return result

    def _parse_dependency(self, name: str, spec: Any) -> RunnableImage:
        """
        Parses a single dependency definition.

        :param name: The name of the dependency.
        :param spec: The dependency mapping.
        :return: A RunnableImage instance.
        """
        if not isinstance(spec, dict):
            raise SpecError(f"Dependency '{name}' must be a mapping")
        if not spec.get("image"):
            raise SpecError(f"Dependency '{name}' has no image")

        image_name, tag = self._split_image(str(spec["image"]), spec.get("tag"))
        image = GenericImage(image_name, tag)

        for condition in self._parse_wait_for(spec.get("wait_for") or []):
            image = image.with_wait_for(condition)
        for port in spec.get("expose") or []:
            image = image.with_exposed_port(int(port))
        if spec.get("entrypoint"):
            image = image.with_entrypoint(str(spec["entrypoint"]))

        runnable = RunnableImage.from_image(image, self._to_list(spec.get("args")))

        for key, value in self._to_pairs(spec.get("env")):
            runnable = runnable.with_env_var((key, value))
        for source, dest in self._to_pairs(spec.get("volumes"), sep=":"):
            runnable = runnable.with_volume((source, dest))
        hosts = spec.get("hosts") or {}
        if not isinstance(hosts, dict):
            raise SpecError(f"Dependency '{name}': 'hosts' must be a mapping")
        for alias, host in hosts.items():
            runnable = runnable.with_host(str(alias), str(host))
        for port in spec.get("ports") or []:
            runnable = runnable.with_mapped_port(self._parse_port(port))

        if spec.get("container_name"):
            runnable = runnable.with_container_name(str(spec["container_name"]))
        if spec.get("network"):
            runnable = runnable.with_network(str(spec["network"]))
        if spec.get("privileged"):
            runnable = runnable.with_privileged(bool(spec["privileged"]))
        if spec.get("shm_size") is not None:
            runnable = runnable.with_shm_size(int(spec["shm_size"]))

        return runnable

    def _split_image(self, image: str, tag: Any) -> Tuple[str, str]:
        """
        Splits ``name:tag``; an explicit ``tag`` key wins, ``latest`` otherwise.
        """
        last_colon = image.rfind(":")
        # A colon followed by a slash belongs to a registry port
        if last_colon != -1 and "/" not in image[last_colon + 1:]:
            name, image_tag = image[:last_colon], image[last_colon + 1:]
        else:
            name, image_tag = image, "latest"
        if tag is not None:
            image_tag = str(tag)
        if not name or not image_tag:
            raise SpecError(f"Image reference needs a non-empty name and tag, got {image!r}")
        return name, image_tag

    def _parse_wait_for(self, entries: List[Any]) -> List[WaitFor]:
        conditions = []
        for entry in entries:
            if isinstance(entry, dict) and entry.get("kind") == ENV_MILLIS_KIND:
                conditions.append(millis_in_env_var(str(entry.get("name", "")), self.lookup))
            else:
                conditions.extend(wait_for_list_adapter.validate_python([entry]))
        return conditions

    def _parse_port(self, port: Any) -> Port:
        """
        Accepts ``"local:internal"``, ``"internal"``, an int or a mapping.
        """
        if isinstance(port, dict):
            return Port(**port)
        if isinstance(port, int):
            return Port.auto(port)
        parts = str(port).split(":")
        if len(parts) == 1:
            return Port.auto(int(parts[0]))
        if len(parts) == 2:
            return Port(local=int(parts[0]), internal=int(parts[1]))
        raise SpecError(f"Invalid port mapping: {port}")

    def _to_pairs(self, val: Any, sep: str = "=") -> List[Tuple[str, str]]:
        """
        Helper to turn a mapping or a list of ``KEY<sep>VALUE`` strings into pairs.
        """
        if not val:
            return []
        if isinstance(val, dict):
            return [(str(k), "" if v is None else str(v)) for k, v in val.items()]
        pairs = []
        for item in val:
            if sep not in str(item):
                raise SpecError(f"Expected KEY{sep}VALUE, got {item!r}")
            key, value = str(item).split(sep, 1)
            pairs.append((key, value))
        return pairs

    def _to_list(self, val: Any) -> List[str]:
        """
        Helper to ensure a value is a list of strings.
        """
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]
