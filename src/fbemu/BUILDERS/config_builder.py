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
Fluent builders assembling an EmulatorConfig.

The firebase part of the configuration has two sources: the in-code
FirebaseConfigBuilder and a firebase.json file. Both are kept in their own
slot and resolved once in build_config(): when both were given, the one
given last wins. When neither was given, firebase.json is loaded from the
default location.
"""
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from pydantic import ValidationError

from .. import constants
from ..exceptions import ConfigurationError, FirebaseJsonError
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MODELS.emulator import Emulator, ExposedPort
from ..MODELS.emulator_config import (
    DockerConfig,
    EmulatorConfig,
    FirebaseConfig,
    FirestoreConfig,
    FunctionsConfig,
    HostingConfig,
    StorageConfig,
)
from ..PARSERS.firebase_json_parser import FirebaseJsonParser

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

INLINE_SOURCE = "inline"
JSON_SOURCE = "firebase.json"


class EmulatorConfigBuilder:
    """
    Accumulates settings and produces an immutable EmulatorConfig.
    Not safe for use from several threads.
    """
    def __init__(self,
                 default_firebase_json: PathLike = constants.DEFAULT_FIREBASE_JSON_PATH,
                 environment: Optional[EnvironmentManager] = None):
        """
        :param default_firebase_json: File loaded when no firebase configuration is given.
        :param environment: Source for ids read from environment variables.
        """
        self.default_firebase_json = Path(default_firebase_json)
        self.environment = environment or EnvironmentManager()

        self._docker_config = DockerConfig()
        self._firebase_version = constants.DEFAULT_FIREBASE_VERSION
        self._project_id: Optional[str] = None
        self._token: Optional[str] = None
        self._java_tool_options: Optional[str] = None
        self._emulator_data: Optional[Path] = None

        self._inline_config: Optional[FirebaseConfig] = None
        self._json_config: Optional[FirebaseConfig] = None
        self._json_path: Optional[Path] = None
        self._last_source: Optional[str] = None

    def with_docker_config(self) -> "DockerConfigBuilder":
        return DockerConfigBuilder(self)

    def with_firebase_version(self, firebase_version: str) -> "EmulatorConfigBuilder":
        self._firebase_version = firebase_version
        return self

    def with_project_id(self, project_id: str) -> "EmulatorConfigBuilder":
        self._project_id = project_id
        return self

    def with_token(self, token: str) -> "EmulatorConfigBuilder":
        """Google Cloud CLI token, needed by some emulators (hosting)."""
        self._token = token
        return self

    def with_java_tool_options(self, java_tool_options: str) -> "EmulatorConfigBuilder":
        self._java_tool_options = java_tool_options
        return self

    def with_emulator_data(self, emulator_data: PathLike) -> "EmulatorConfigBuilder":
        """Host directory emulator state is imported from and exported to."""
        self._emulator_data = Path(emulator_data)
        return self

    def with_firebase_config(self) -> "FirebaseConfigBuilder":
        return FirebaseConfigBuilder(self)

    def read_from_firebase_json(self,
                                firebase_json: PathLike,
                                base_dir: Optional[PathLike] = None) -> "EmulatorConfigBuilder":
        """
        Reads the firebase configuration from a firebase.json file. The file
        itself is copied into the image unchanged.

        :param firebase_json: Path to the file.
        :param base_dir: Directory relative paths inside the file are resolved
                         against; defaults to the working directory.
        :raises FirebaseJsonError: If the file cannot be read.
        """
        path = Path(firebase_json)
        self._json_config = FirebaseJsonParser(base_dir).parse(path)
        self._json_path = path
        self._last_source = JSON_SOURCE
        return self

    def build_config(self) -> EmulatorConfig:
        """
        Resolves the collected settings.

        :raises ConfigurationError: If no firebase configuration was given and
                                    the default firebase.json cannot be read.
        """
        firebase_config, custom_json = self._resolve_firebase_config()

        return EmulatorConfig(
            docker_config=self._docker_config,
            firebase_version=self._firebase_version,
            project_id=self._project_id,
            token=self._token,
            custom_firebase_json=custom_json,
            java_tool_options=self._java_tool_options,
            emulator_data=self._emulator_data,
            firebase_config=firebase_config,
        )

    def build(self, runtime=None):
        """
        Creates the container for the resolved configuration.

        :param runtime: The container runtime, docker when omitted.
        :return: A FirebaseEmulatorContainer that has not been started.
        """
        from ..MANAGERS.emulator_container import FirebaseEmulatorContainer
        return FirebaseEmulatorContainer(self.build_config(), runtime=runtime)

    def _resolve_firebase_config(self) -> Tuple[FirebaseConfig, Optional[Path]]:
        if self._inline_config is None and self._json_config is None:
            logger.info("No firebase configuration given, reading %s", self.default_firebase_json)
            try:
                self.read_from_firebase_json(self.default_firebase_json,
                                             base_dir=self.default_firebase_json.resolve().parent)
            except FirebaseJsonError as e:
                raise ConfigurationError(
                    f"Firebase was not configured and could not auto-read from {self.default_firebase_json}") from e

        if self._last_source == JSON_SOURCE:
            if self._inline_config is not None:
                logger.debug("firebase.json given last, replacing the in-code firebase configuration")
            return self._json_config, self._json_path

        if self._json_config is not None:
            logger.debug("In-code firebase configuration given last, ignoring %s", self._json_path)
        return self._inline_config, None

    def _merge_docker_config(self, updates: Dict[str, Any]):
        try:
            self._docker_config = DockerConfig.model_validate({**self._docker_config.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid docker configuration:\n{e}") from e

    def _set_firebase_config(self, firebase_config: FirebaseConfig):
        self._inline_config = firebase_config
        self._last_source = INLINE_SOURCE


class DockerConfigBuilder:
    """
    Sets the image and identity. Only the fields set here replace the
    parent's values when done() is called.
    """
    def __init__(self, parent: EmulatorConfigBuilder):
        self._parent = parent
        self._updates: Dict[str, Any] = {}

    def with_image(self, image_name: str) -> "DockerConfigBuilder":
        self._updates["image_name"] = image_name
        return self

    def with_user_id(self, user_id: int) -> "DockerConfigBuilder":
        self._updates["user_id"] = user_id
        return self

    def with_group_id(self, group_id: int) -> "DockerConfigBuilder":
        self._updates["group_id"] = group_id
        return self

    def with_user_id_from_env(self, name: str, env_files: Iterable[str] = ()) -> "DockerConfigBuilder":
        """Uses the numeric value of an environment variable as user id; unset leaves it untouched."""
        user_id = self._parent.environment.get_int(name, env_files)
        if user_id is not None:
            self.with_user_id(user_id)
        return self

    def with_group_id_from_env(self, name: str, env_files: Iterable[str] = ()) -> "DockerConfigBuilder":
        """Uses the numeric value of an environment variable as group id; unset leaves it untouched."""
        group_id = self._parent.environment.get_int(name, env_files)
        if group_id is not None:
            self.with_group_id(group_id)
        return self

    def done(self) -> EmulatorConfigBuilder:
        self._parent._merge_docker_config(self._updates)
        return self._parent


class FirebaseConfigBuilder:
    """
    Describes the emulators and their files in code instead of a firebase.json.
    """
    def __init__(self, parent: EmulatorConfigBuilder):
        self._parent = parent
        self._hosting_config = HostingConfig()
        self._storage_config = StorageConfig()
        self._firestore_config = FirestoreConfig()
        self._functions_config = FunctionsConfig()
        self._services: Dict[Emulator, ExposedPort] = {}

    def with_hosting_path(self, hosting_content_dir: PathLike) -> "FirebaseConfigBuilder":
        self._hosting_config = HostingConfig(hosting_content_dir=Path(hosting_content_dir))
        return self

    def with_storage_rules(self, rules_file: PathLike) -> "FirebaseConfigBuilder":
        self._storage_config = StorageConfig(rules_file=Path(rules_file))
        return self

    def with_firestore_rules(self, rules_file: PathLike) -> "FirebaseConfigBuilder":
        self._firestore_config = self._firestore_config.model_copy(update={"rules_file": Path(rules_file)})
        return self

    def with_firestore_indexes(self, indexes_file: PathLike) -> "FirebaseConfigBuilder":
        self._firestore_config = self._firestore_config.model_copy(update={"indexes_file": Path(indexes_file)})
        return self

    def with_functions(self, functions_path: PathLike, ignores: Iterable[str] = ()) -> "FirebaseConfigBuilder":
        self._functions_config = FunctionsConfig(functions_path=Path(functions_path), ignores=tuple(ignores))
        return self

    def with_emulator(self, emulator: Emulator) -> "FirebaseConfigBuilder":
        """Enables an emulator on a port allocated when the container starts."""
        self._services[emulator] = ExposedPort.dynamic()
        return self

    def with_emulators(self, *emulators: Emulator) -> "FirebaseConfigBuilder":
        for emulator in emulators:
            self.with_emulator(emulator)
        return self

    def with_emulator_on_fixed_port(self, emulator: Emulator, port: int) -> "FirebaseConfigBuilder":
        """Enables an emulator on the same fixed port inside and outside the container."""
        try:
            self._services[emulator] = ExposedPort.fixed(port)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid port {port!r} for {emulator.name}") from e
        return self

    def with_emulators_on_ports(self, *emulators_and_ports: Any) -> "FirebaseConfigBuilder":
        """
        Enables emulators on fixed ports.

        :param emulators_and_ports: Alternating Emulator and port, e.g.
                                    ``Emulator.AUTHENTICATION, 9099, Emulator.CLOUD_FIRESTORE, 8080``.
        :raises ConfigurationError: If the arguments do not alternate.
        """
        if len(emulators_and_ports) % 2 != 0:
            raise ConfigurationError("Emulators and ports must both be specified alternating")

        pairs = list(zip(emulators_and_ports[::2], emulators_and_ports[1::2]))
        for emulator, port in pairs:
            if not isinstance(emulator, Emulator) or not isinstance(port, int) or isinstance(port, bool):
                raise ConfigurationError("Emulators and ports must be specified alternating")

        for emulator, port in pairs:
            self.with_emulator_on_fixed_port(emulator, port)
        return self

    def done(self) -> EmulatorConfigBuilder:
        self._parent._set_firebase_config(FirebaseConfig(
            hosting_config=self._hosting_config,
            storage_config=self._storage_config,
            firestore_config=self._firestore_config,
            functions_config=self._functions_config,
            services=dict(self._services),
        ))
        return self._parent
