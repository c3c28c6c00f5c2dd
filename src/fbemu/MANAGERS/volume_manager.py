"""
Host directories bind-mounted into the emulator container.
"""
import logging
import os
from typing import List

from .. import constants
from ..exceptions import ConfigFileMissingError
from ..MODELS.container_image import VolumeMount
from ..MODELS.emulator_config import EmulatorConfig

logger = logging.getLogger(__name__)


class VolumeManager:
    """
    Maps the emulator data and hosting content directories onto the volumes
    declared in the image.
    """
    def __init__(self, emulator_config: EmulatorConfig):
        """
        Initializes the volume manager.

        :param emulator_config: The resolved configuration.
        """
        self.config = emulator_config

    def mounts(self) -> List[VolumeMount]:
        """
        The bind mounts for the container. Emulator data is mounted
        read-write so exports land on the host; hosting content is
        mounted read-only.
        """
        mounts = []

        if self.config.emulator_data is not None:
            mounts.append(VolumeMount(source=self.config.emulator_data,
                                      target=constants.EMULATOR_DATA_PATH))

        hosting_dir = self.config.firebase_config.hosting_config.hosting_content_dir
        if hosting_dir is not None:
            mounts.append(VolumeMount(source=hosting_dir,
                                      target=constants.FIREBASE_HOSTING_PATH,
                                      read_only=True))
        return mounts

    def prepare_volumes(self):
        """
        Creates the emulator data directory when it does not exist yet.
        The hosting directory has to exist already.

        :raises ConfigFileMissingError: If the hosting directory is missing.
        """
        for mount in self.mounts():
            if os.path.isdir(mount.source):
                continue
            if mount.read_only:
                raise ConfigFileMissingError(f"Hosting directory does not exist: {mount.source}")
            logger.info("Creating emulator data directory %s", mount.source)
            os.makedirs(mount.source, exist_ok=True)
