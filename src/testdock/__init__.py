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
testdock - declarative container dependencies for integration tests

Describes a containerized test dependency (image, overrides, ports, post-start
commands) and the ordered readiness conditions that decide when it is usable.
"""

from .MODELS.image import ExecCommand, Host, Image, ImageArgs, NoArgs
from .MODELS.ports import AUTO_PORT, ContainerState, Port, Ports
from .MODELS.runnable_image import RunnableImage, RunSpec
from .MODELS.wait_for import WaitFor, wait_for
from .IMAGES.generic import GenericImage

__version__ = "0.1.0"
__author__ = "The testdock Authors"
__license__ = "Apache-2.0"

__all__ = [
    "AUTO_PORT",
    "ContainerState",
    "ExecCommand",
    "GenericImage",
    "Host",
    "Image",
    "ImageArgs",
    "NoArgs",
    "Port",
    "Ports",
    "RunSpec",
    "RunnableImage",
    "WaitFor",
    "wait_for",
]
