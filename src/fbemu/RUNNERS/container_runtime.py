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
The operations fbemu needs from a container runtime.
"""
import signal
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..MODELS.container_image import ContainerImage, VolumeMount


class ContainerRuntime(ABC):
    """
    Builds images and drives the lifecycle of one or more containers.
    Implementations report their own failures unchanged.
    """

    @abstractmethod
    def build_image(self, image: ContainerImage) -> str:
        """
        Builds the image.

        Args:
            image (ContainerImage): The build specification.

        Returns:
            str: Reference of the built image.
        """

    @abstractmethod
    def run(self,
            image_ref: str,
            ports: Dict[int, Optional[int]],
            volumes: List[VolumeMount]) -> str:
        """
        Starts a detached container.

        Args:
            image_ref (str): Image to run.
            ports (Dict[int, Optional[int]]): Container port to host port; None picks a free one.
            volumes (List[VolumeMount]): Bind mounts.

        Returns:
            str: Identifier of the container.
        """

    @abstractmethod
    def stop(self, container_id: str, sig: signal.Signals, timeout: float):
        """
        Sends a signal to the container and waits for it to exit.
        """

    @abstractmethod
    def remove(self, container_id: str):
        """
        Removes a stopped container.
        """

    @abstractmethod
    def get_mapped_port(self, container_id: str, container_port: int) -> int:
        """
        Returns the host port bound to a container port.
        """

    @abstractmethod
    def get_host(self) -> str:
        """
        Returns the address published ports are reachable on.
        """

    @abstractmethod
    def wait_for_log(self, container_id: str, pattern: str, timeout: float):
        """
        Blocks until a log line matches the regular expression.

        Raises:
            ContainerStartupTimeout: If no line matched within the timeout.
        """
