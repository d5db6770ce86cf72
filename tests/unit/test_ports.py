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
Unit tests for port requests and resolved port mappings.
"""
import pytest
from pydantic import ValidationError

from testdock.errors import PortNotMappedError
from testdock.MODELS.ports import AUTO_PORT, ContainerState, Port, Ports


class TestPort:
    """Tests for Port."""

    def test_from_tuple(self):
        port = Port.of((8080, 80))
        assert port.local == 8080
        assert port.internal == 80
        assert not port.is_auto

    def test_auto(self):
        port = Port.auto(80)
        assert port.local == AUTO_PORT
        assert port.is_auto
        assert str(port) == "0:80"

    def test_of_returns_port_unchanged(self):
        port = Port(local=1, internal=2)
        assert Port.of(port) is port

    def test_out_of_range(self):
        with pytest.raises(ValidationError):
            Port(local=70000, internal=80)
        with pytest.raises(ValidationError):
            Port(local=0, internal=0)


class TestPorts:
    """Tests for parsing engine port bindings."""

    def test_from_inspect(self):
        ports = Ports.from_inspect({
            "80/tcp": [
                {"HostIp": "0.0.0.0", "HostPort": "32768"},
                {"HostIp": "::", "HostPort": "32769"},
            ],
            "443/tcp": None,
            "53/udp": [{"HostIp": "0.0.0.0", "HostPort": "32770"}],
        })
        assert ports.map_to_host_port_ipv4(80) == 32768
        assert ports.map_to_host_port_ipv6(80) == 32769
        assert ports.map_to_host_port_ipv4(53) == 32770
        assert ports.map_to_host_port_ipv6(53) is None
        assert ports.map_to_host_port_ipv4(443) is None
        assert ports.internal_ports == [53, 80]

    def test_first_binding_wins(self):
        ports = Ports.from_inspect({
            "80/tcp": [
                {"HostIp": "0.0.0.0", "HostPort": "1000"},
                {"HostIp": "127.0.0.1", "HostPort": "2000"},
            ],
        })
        assert ports.map_to_host_port_ipv4(80) == 1000

    def test_empty(self):
        assert Ports.from_inspect(None).internal_ports == []
        assert Ports.from_inspect({}).internal_ports == []


class TestContainerState:
    """Tests for host port lookups after start."""

    def test_ipv4_only_mapping(self):
        state = ContainerState(Ports(ipv4={80: 32768}))
        assert state.host_port_ipv4(80) == 32768
        with pytest.raises(PortNotMappedError):
            state.host_port_ipv6(80)

    def test_unknown_port_is_fatal(self):
        state = ContainerState(Ports(ipv4={80: 32768}, ipv6={80: 32768}))
        with pytest.raises(PortNotMappedError) as exc_info:
            state.host_port_ipv4(8080)
        assert exc_info.value.internal_port == 8080
        assert "8080" in str(exc_info.value)

    def test_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            ContainerState().host_port_ipv4(80)
