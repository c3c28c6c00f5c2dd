"""
Builds the image specification that runs the Firebase emulators.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional

from .. import constants
from ..exceptions import ConfigFileMissingError, ConfigurationError
from ..MANAGERS.network_manager import NetworkManager
from ..MODELS.container_image import ContainerImage, ContextFile
from ..MODELS.emulator import Emulator
from ..MODELS.emulator_config import EmulatorConfig
from ..PARSERS.firebase_json_parser import FirebaseJsonParser
from .firebase_json_builder import FirebaseJsonBuilder

logger = logging.getLogger(__name__)

OS_PACKAGES = "openjdk11-jre bash curl openssl gettext nano nginx sudo"


class ImageBuilder:
    """
    Translates an EmulatorConfig into an ordered list of build instructions.

    The order of the steps is significant: the install step creates the
    directories and the identity step owns them before anything is
    downloaded or copied into them, and USER switches identity for every
    later step as well as for the running container.
    """
    def __init__(self, emulator_config: EmulatorConfig):
        """
        Initializes the ImageBuilder.

        :param emulator_config: The resolved configuration.
        """
        self.config = emulator_config
        self.services = emulator_config.firebase_config.services

    def build(self) -> ContainerImage:
        """
        Validates the configuration and creates the image specification.

        :return: A ContainerImage instance.
        :raises ConfigurationError: If the configuration is invalid.
        :raises ConfigFileMissingError: If a file to copy into the image does not exist.
        :raises FirebaseJsonError: If firebase.json cannot be generated.
        """
        self.validate()

        image = ContainerImage(base_image=self.config.docker_config.image_name)
        self._configure_base_image(image)
        self._initial_setup(image)
        self._authenticate_to_firebase(image)
        self._setup_java_tool_options(image)
        self._setup_user_and_group(image)
        self._download_emulators(image)
        self._add_firebase_json(image)
        self._include_firestore_files(image)
        self._include_storage_files(image)
        self._include_functions(image)
        self._setup_data_import_export(image)
        self._setup_hosting(image)
        self._run_executable(image)

        logger.debug("Synthesized %d instructions for %s", len(image.dockerfile), image.tag)
        return image

    def validate(self):
        """
        Checks option combinations and injected files. A missing project
        id, two emulators on one port and missing files are fatal; the UI
        and host binding findings are only logged.
        """
        if self.is_enabled(Emulator.AUTHENTICATION) and not self.config.project_id:
            raise ConfigurationError("Can't create Firebase Auth emulator. Google Project id is required")

        self._check_port_clashes()

        if self.is_enabled(Emulator.EMULATOR_SUITE_UI):
            if not self.is_enabled(Emulator.EMULATOR_HUB):
                logger.info("Firebase Emulator UI is enabled, but no Hub port is specified. "
                            "You will not be able to use the Hub API")

            if not self.is_enabled(Emulator.LOGGING):
                logger.info("Firebase Emulator UI is enabled, but no Logging port is specified. "
                            "You will not be able to see the logging")

            if self.is_enabled(Emulator.CLOUD_FIRESTORE) and not self.is_enabled(Emulator.CLOUD_FIRESTORE_WS):
                logger.warning("Firebase Firestore Emulator and Emulator UI are enabled but no Firestore "
                               "Websocket port is specified. You will not be able to use the Firestore UI")

        for path in self._injected_files():
            if not path.exists():
                raise ConfigFileMissingError(f"File to include in the image does not exist: {path}")

        if self.config.custom_firebase_json is not None:
            parser = FirebaseJsonParser()
            document = parser.read_document(self.config.custom_firebase_json)
            for emulator in parser.unbound_emulators(document):
                logger.warning("Emulator '%s' in %s does not bind to host %s and will not be "
                               "reachable outside the container",
                               emulator.config_property, self.config.custom_firebase_json,
                               constants.EMULATOR_HOST)

    def is_enabled(self, emulator: Emulator) -> bool:
        return emulator in self.services

    def enabled_downloads(self) -> List[str]:
        """Download identifiers of the enabled emulators, in declaration order."""
        return [e.download_id for e in Emulator if e.is_downloadable and self.is_enabled(e)]

    def arguments(self) -> List[str]:
        """
        Arguments passed to the firebase executable.

        Emulator data goes to a subdirectory of the mounted volume: the
        emulator removes and recreates its export directory on exit, which
        fails on a mount point.
        """
        arguments = ["emulators:start"]
        if self.config.project_id:
            arguments += ["--project", self.config.project_id]
        if self.config.emulator_data is not None:
            arguments += ["--import", constants.EMULATOR_EXPORT_PATH]
            arguments += ["--export-on-exit", constants.EMULATOR_EXPORT_PATH]
        return arguments

    def user(self) -> int:
        uid = self.config.docker_config.user_id
        return constants.DEFAULT_USER_ID if uid is None else uid

    def group(self) -> int:
        gid = self.config.docker_config.group_id
        return constants.DEFAULT_GROUP_ID if gid is None else gid

    def _check_port_clashes(self):
        network = NetworkManager(self.services)
        listeners: Dict[int, Emulator] = {}
        for emulator in self.services:
            port = network.container_port(emulator)
            if port in listeners:
                raise ConfigurationError(f"Emulators {listeners[port].name} and {emulator.name} "
                                         f"would both listen on port {port}")
            listeners[port] = emulator

    def _injected_files(self) -> List[Path]:
        firebase = self.config.firebase_config
        candidates: List[Optional[Path]] = [
            self.config.custom_firebase_json,
            firebase.firestore_config.rules_file,
            firebase.firestore_config.indexes_file,
            firebase.storage_config.rules_file,
            firebase.functions_config.functions_path,
            firebase.hosting_config.hosting_content_dir,
        ]
        return [p for p in candidates if p is not None]

    def _configure_base_image(self, image: ContainerImage):
        image.dockerfile.add("FROM", self.config.docker_config.image_name)

    def _initial_setup(self, image: ContainerImage):
        root = constants.FIREBASE_ROOT
        image.dockerfile.add("RUN", " && ".join([
            f"apk --no-cache add {OS_PACKAGES}",
            "npm cache clean --force",
            f"npm i -g firebase-tools@{self.config.firebase_version}",
            "deluser nginx",
            "delgroup abuild",
            "delgroup ping",
            f"mkdir -p {root}",
            f"mkdir -p {constants.FIREBASE_HOSTING_PATH}",
            f"mkdir -p {constants.EMULATOR_DATA_PATH}",
            f"mkdir -p {constants.EMULATOR_EXPORT_PATH}",
            f"chmod 777 -R {root}",
        ]))

    def _authenticate_to_firebase(self, image: ContainerImage):
        if self.config.token:
            self._env(image, "FIREBASE_TOKEN", self.config.token)

    def _setup_java_tool_options(self, image: ContainerImage):
        if self.config.java_tool_options:
            self._env(image, "JAVA_TOOL_OPTIONS", self.config.java_tool_options)

    def _setup_user_and_group(self, image: ContainerImage):
        docker = self.config.docker_config
        commands = []

        if docker.group_id is not None:
            commands.append(f"addgroup -g {docker.group_id} {constants.RUNNER_NAME}")

        if docker.user_id is not None:
            group_name = constants.RUNNER_NAME if docker.group_id is not None else constants.DEFAULT_GROUP_NAME
            commands.append(f"adduser -u {docker.user_id} -G {group_name} "
                            f"-D -h {constants.FIREBASE_ROOT} {constants.RUNNER_NAME}")

        user = f"{self.user()}:{self.group()}"
        commands.append(f"chown {user} -R {constants.FIREBASE_ROOT}")

        image.dockerfile.add("RUN", " && ".join(commands))
        image.dockerfile.add("USER", user)
        image.user = user

    def _download_emulators(self, image: ContainerImage):
        downloads = self.enabled_downloads()
        image.downloads = downloads
        if not downloads:
            logger.debug("No emulators to download")
            return
        image.dockerfile.add("RUN", " && ".join(f"firebase setup:emulators:{d}" for d in downloads))

    def _add_firebase_json(self, image: ContainerImage):
        image.dockerfile.add("WORKDIR", constants.FIREBASE_ROOT)
        image.working_directory = constants.FIREBASE_ROOT

        if self.config.custom_firebase_json is not None:
            logger.debug("Using custom firebase.json %s", self.config.custom_firebase_json)
            image.context_files[constants.FIREBASE_JSON] = ContextFile(source=self.config.custom_firebase_json)
        else:
            content = FirebaseJsonBuilder(self.config.firebase_config).build_firebase_config()
            image.context_files[constants.FIREBASE_JSON] = ContextFile(content=content)

        self._add(image, constants.FIREBASE_JSON)

    def _include_firestore_files(self, image: ContainerImage):
        firestore = self.config.firebase_config.firestore_config
        if firestore.rules_file is not None:
            self._add(image, constants.FIRESTORE_RULES, firestore.rules_file)
        if firestore.indexes_file is not None:
            self._add(image, constants.FIRESTORE_INDEXES, firestore.indexes_file)

    def _include_storage_files(self, image: ContainerImage):
        storage = self.config.firebase_config.storage_config
        if storage.rules_file is not None:
            self._add(image, constants.STORAGE_RULES, storage.rules_file)

    def _include_functions(self, image: ContainerImage):
        # The ignore globs travel in firebase.json
        functions = self.config.firebase_config.functions_config
        if functions.functions_path is not None:
            self._add(image, constants.FUNCTIONS_DIR, functions.functions_path)

    def _setup_data_import_export(self, image: ContainerImage):
        if self.config.emulator_data is not None:
            self._volume(image, constants.EMULATOR_DATA_PATH)

    def _setup_hosting(self, image: ContainerImage):
        if self.config.firebase_config.hosting_config.hosting_content_dir is not None:
            self._volume(image, constants.FIREBASE_HOSTING_PATH)

    def _run_executable(self, image: ContainerImage):
        image.entrypoint = [constants.FIREBASE_EXECUTABLE]
        image.cmd = self.arguments()
        image.dockerfile.add("ENTRYPOINT", *image.entrypoint)
        image.dockerfile.add("CMD", *image.cmd)

    @staticmethod
    def _env(image: ContainerImage, key: str, value: str):
        image.dockerfile.add("ENV", key, value)
        image.env_vars[key] = value

    @staticmethod
    def _add(image: ContainerImage, name: str, source: Optional[Path] = None):
        if source is not None:
            image.context_files[name] = ContextFile(source=source)
        image.dockerfile.add("ADD", name, f"{constants.FIREBASE_ROOT}/{name}")

    @staticmethod
    def _volume(image: ContainerImage, path: str):
        image.dockerfile.add("VOLUME", path)
        image.volumes.append(path)
