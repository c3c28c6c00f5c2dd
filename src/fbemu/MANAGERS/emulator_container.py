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
Lifecycle management for the Firebase emulator container.
"""
import logging
import signal
from typing import Dict, List, Optional

from .. import constants
from ..BUILDERS.image_builder import ImageBuilder
from ..exceptions import ContainerStateError
from ..MODELS.container_image import ContainerImage, VolumeMount
from ..MODELS.emulator import Emulator
from ..MODELS.emulator_config import EmulatorConfig
from ..RUNNERS.container_runtime import ContainerRuntime
from .network_manager import NetworkManager
from .volume_manager import VolumeManager

logger = logging.getLogger(__name__)


class FirebaseEmulatorContainer:
    """
    Manages the lifecycle of the container running the emulators.

    The image is synthesized when the object is created, so an invalid
    configuration fails before the runtime is touched.
    """
    def __init__(self,
                 emulator_config: EmulatorConfig,
                 runtime: Optional[ContainerRuntime] = None,
                 startup_timeout: float = constants.DEFAULT_STARTUP_TIMEOUT,
                 stop_timeout: float = constants.DEFAULT_STOP_TIMEOUT):
        """
        Initializes the emulator container.

        :param emulator_config: The resolved configuration.
        :param runtime: The container runtime, docker when omitted.
        :param startup_timeout: Seconds to wait for the emulator hub.
        :param stop_timeout: Seconds to wait for the emulators to export and exit.
        :raises ConfigurationError: If the configuration is invalid.
        """
        self.config = emulator_config
        self.image: ContainerImage = ImageBuilder(emulator_config).build()
        self.network_manager = NetworkManager(emulator_config.services)
        self.volume_manager = VolumeManager(emulator_config)
        self.startup_timeout = startup_timeout
        self.stop_timeout = stop_timeout

        if runtime is None:
            from ..RUNNERS.docker_runtime import DockerRuntime
            runtime = DockerRuntime()
        self.runtime = runtime
        self.container_id: Optional[str] = None

    @classmethod
    def builder(cls, *args, **kwargs):
        """Shortcut for ``EmulatorConfigBuilder(*args, **kwargs)``."""
        from ..BUILDERS.config_builder import EmulatorConfigBuilder
        return EmulatorConfigBuilder(*args, **kwargs)

    @property
    def is_running(self) -> bool:
        return self.container_id is not None

    def exposed_ports(self) -> Dict[int, Optional[int]]:
        """
        Container ports to publish. Fixed ports map onto themselves;
        dynamic ones are left for the runtime to allocate.
        """
        return self.network_manager.port_bindings()

    def volume_mounts(self) -> List[VolumeMount]:
        return self.volume_manager.mounts()

    def start(self):
        """
        Builds the image, starts the container and waits until the emulator
        hub reports it is running.

        :raises ContainerStateError: If the container is already started.
        :raises ContainerStartupTimeout: If the hub did not come up in time.
        """
        if self.is_running:
            raise ContainerStateError("The emulator container is already started")

        self.network_manager.busy_fixed_ports()
        self.volume_manager.prepare_volumes()

        image_ref = self.runtime.build_image(self.image)
        self.container_id = self.runtime.run(image_ref, self.exposed_ports(), self.volume_mounts())
        logger.info("Waiting for the emulators in %s", self.container_id)
        try:
            self.runtime.wait_for_log(self.container_id, constants.READY_LOG_PATTERN, self.startup_timeout)
        except BaseException:
            logger.error("The emulators in %s did not start, stopping the container", self.container_id)
            self._discard()
            raise

    def _discard(self):
        # Stop failures are logged; the startup error is what the caller sees
        try:
            self.stop()
        except Exception:
            logger.exception("Could not stop emulator container %s", self.container_id)
        finally:
            self.container_id = None

    def stop(self):
        """
        Stops the container with SIGTERM so the emulators can export their
        data, then removes it. Does nothing when not started.
        """
        if not self.is_running:
            logger.debug("The emulator container is not running, nothing to stop")
            return

        container_id = self.container_id
        self.runtime.stop(container_id, signal.SIGTERM, self.stop_timeout)
        self.runtime.remove(container_id)
        self.container_id = None
        logger.info("Stopped emulator container %s", container_id)

    def emulator_port(self, emulator: Emulator) -> int:
        """
        The host port an emulator is reachable on.

        :raises EmulatorNotEnabledError: If the emulator is not enabled.
        :raises ContainerStateError: If the port is dynamic and the container is not started.
        """
        exposed = self.network_manager.exposure(emulator)
        if exposed.is_fixed:
            return exposed.fixed_port

        if not self.is_running:
            raise ContainerStateError(
                f"The port of {emulator.name} is assigned when the container starts")
        return self.runtime.get_mapped_port(self.container_id, emulator.internal_port)

    def emulator_ports(self) -> Dict[Emulator, int]:
        return {emulator: self.emulator_port(emulator) for emulator in self.config.services}

    def emulator_endpoints(self) -> Dict[Emulator, str]:
        """
        ``host:port`` for every enabled emulator.
        """
        host = self.runtime.get_host()
        return {emulator: f"{host}:{port}" for emulator, port in self.emulator_ports().items()}

    def __enter__(self) -> "FirebaseEmulatorContainer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
