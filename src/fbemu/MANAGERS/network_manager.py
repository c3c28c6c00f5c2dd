"""
Port publishing for the emulator container.
"""
import logging
from typing import Dict, List, Optional

from ..exceptions import EmulatorNotEnabledError
from ..MODELS.emulator import Emulator, ExposedPort
from ..UTILS.port_finder import is_port_free

logger = logging.getLogger(__name__)


class NetworkManager:
    """
    Decides which container ports are published and on which host ports.

    A fixed port is used on both sides: the emulator listens on it inside
    the container and it is published under the same number. A dynamic
    emulator listens on its default port, published on a host port the
    runtime picks.
    """
    def __init__(self, services: Dict[Emulator, ExposedPort]):
        """
        Initializes the network manager.

        :param services: The enabled emulators and their exposure.
        """
        self.services = services

    def exposure(self, emulator: Emulator) -> ExposedPort:
        try:
            return self.services[emulator]
        except KeyError:
            raise EmulatorNotEnabledError(f"Emulator {emulator.name} is not enabled") from None

    def container_port(self, emulator: Emulator) -> int:
        """
        The port the emulator listens on inside the container.
        """
        exposed = self.exposure(emulator)
        return exposed.fixed_port if exposed.is_fixed else emulator.internal_port

    def port_bindings(self) -> Dict[int, Optional[int]]:
        """
        Mapping from container port to host port; None asks the runtime to
        allocate a free host port.
        """
        bindings: Dict[int, Optional[int]] = {}
        for emulator, exposed in self.services.items():
            if exposed.is_fixed:
                bindings[exposed.fixed_port] = exposed.fixed_port
            else:
                bindings[emulator.internal_port] = None
        return bindings

    def busy_fixed_ports(self) -> List[int]:
        """
        Fixed host ports that are already taken on this machine.
        """
        busy = []
        for emulator, exposed in self.services.items():
            if exposed.is_fixed and not is_port_free(exposed.fixed_port):
                logger.warning("Port %d for %s is already in use", exposed.fixed_port, emulator.name)
                busy.append(exposed.fixed_port)
        return busy
