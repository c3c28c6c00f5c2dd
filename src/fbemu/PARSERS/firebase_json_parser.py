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
Parser for firebase.json files, translating them into a FirebaseConfig.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError

from .. import constants
from ..exceptions import FirebaseJsonError
from ..MODELS.emulator import Emulator, ExposedPort
from ..MODELS.emulator_config import (
    FirebaseConfig,
    FirestoreConfig,
    FunctionsConfig,
    HostingConfig,
    StorageConfig,
)

logger = logging.getLogger(__name__)


class EmulatorBlock(BaseModel):
    """One entry of the ``emulators`` section."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    port: Optional[StrictInt] = Field(default=None, ge=1, le=65535)
    host: Optional[str] = None
    enabled: Optional[bool] = None
    websocket_port: Optional[StrictInt] = Field(default=None, alias="websocketPort", ge=1, le=65535)


class FirebaseJsonDocument(BaseModel):
    """
    Top level of firebase.json. Product sections may be objects or lists
    (multi-site hosting, functions codebases); only objects are translated.
    """
    model_config = ConfigDict(extra="allow")

    hosting: Any = None
    storage: Any = None
    firestore: Any = None
    functions: Any = None
    emulators: Dict[str, Any] = Field(default_factory=dict)

    def emulator_block(self, emulator: Emulator) -> Optional[EmulatorBlock]:
        if emulator.config_property is None:
            return None
        block = self.emulators.get(emulator.config_property)
        if block is None:
            return None
        if not isinstance(block, dict):
            raise FirebaseJsonError(
                f"emulators.{emulator.config_property} must be an object, got {type(block).__name__}")
        try:
            return EmulatorBlock.model_validate(block)
        except ValidationError as e:
            raise FirebaseJsonError(f"Invalid settings for emulators.{emulator.config_property}:\n{e}") from e


class FirebaseJsonParser:
    """
    Reads firebase.json documents.

    Relative paths in the document are resolved against ``base_dir``, which
    defaults to the current working directory of the process.
    """
    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def parse(self, firebase_json: Union[str, Path]) -> FirebaseConfig:
        """
        Parses a firebase.json file.

        :param firebase_json: Path to the file.
        :return: The firebase configuration described by the file.
        :raises FirebaseJsonError: If the file cannot be read or decoded.
        """
        return self._translate(self.read_document(firebase_json))

    def parse_from_string(self, content: str) -> FirebaseConfig:
        """
        Parses firebase.json content held in memory.
        """
        return self._translate(self._decode(content, "<string>"))

    def read_document(self, firebase_json: Union[str, Path]) -> FirebaseJsonDocument:
        path = Path(firebase_json)
        logger.debug("Reading firebase configuration from %s", path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise FirebaseJsonError(f"Could not read {path}: {e}") from e
        return self._decode(content, str(path))

    def unbound_emulators(self, document: FirebaseJsonDocument) -> List[Emulator]:
        """
        Lists enabled emulators that do not listen on all interfaces and
        therefore cannot be reached through the published container ports.
        """
        unbound = []
        for emulator in Emulator:
            block = document.emulator_block(emulator)
            if block is not None and block.host != constants.EMULATOR_HOST:
                unbound.append(emulator)
        return unbound

    def _decode(self, content: str, origin: str) -> FirebaseJsonDocument:
        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            raise FirebaseJsonError(f"{origin} is not valid JSON: {e}") from e
        if not isinstance(raw, dict):
            raise FirebaseJsonError(f"{origin} must contain a JSON object")
        try:
            return FirebaseJsonDocument.model_validate(raw)
        except ValidationError as e:
            raise FirebaseJsonError(f"{origin} has an invalid structure:\n{e}") from e

    def _translate(self, document: FirebaseJsonDocument) -> FirebaseConfig:
        try:
            services = self._read_emulators(document)
        except ValidationError as e:
            raise FirebaseJsonError(f"Invalid emulator settings:\n{e}") from e

        return FirebaseConfig(
            hosting_config=self._read_hosting(document.hosting),
            storage_config=self._read_storage(document.storage),
            firestore_config=self._read_firestore(document.firestore),
            functions_config=self._read_functions(document.functions),
            services=services,
        )

    def _read_emulators(self, document: FirebaseJsonDocument) -> Dict[Emulator, ExposedPort]:
        services: Dict[Emulator, ExposedPort] = {}
        for emulator in Emulator:
            block = document.emulator_block(emulator)
            if block is None:
                continue
            if block.enabled is False:
                logger.debug("Emulator '%s' is disabled in firebase.json", emulator.config_property)
                continue
            services[emulator] = ExposedPort(fixed_port=block.port)

        firestore = document.emulator_block(Emulator.CLOUD_FIRESTORE)
        if firestore is not None and firestore.websocket_port is not None:
            services[Emulator.CLOUD_FIRESTORE_WS] = ExposedPort.fixed(firestore.websocket_port)

        logger.debug("Emulators in firebase.json: %s", ", ".join(e.name for e in services))
        return services

    def _read_hosting(self, hosting: Any) -> HostingConfig:
        if not isinstance(hosting, dict):
            self._skip("hosting", hosting)
            return HostingConfig()
        return HostingConfig(hosting_content_dir=self._resolve_path(hosting.get("public")))

    def _read_storage(self, storage: Any) -> StorageConfig:
        if not isinstance(storage, dict):
            self._skip("storage", storage)
            return StorageConfig()
        return StorageConfig(rules_file=self._resolve_path(storage.get("rules")))

    def _read_firestore(self, firestore: Any) -> FirestoreConfig:
        if not isinstance(firestore, dict):
            self._skip("firestore", firestore)
            return FirestoreConfig()
        return FirestoreConfig(
            rules_file=self._resolve_path(firestore.get("rules")),
            indexes_file=self._resolve_path(firestore.get("indexes")),
        )

    def _read_functions(self, functions: Any) -> FunctionsConfig:
        if not isinstance(functions, dict):
            self._skip("functions", functions)
            return FunctionsConfig()

        ignores = functions.get("ignores") or []
        if not isinstance(ignores, list) or not all(isinstance(i, str) for i in ignores):
            raise FirebaseJsonError("functions.ignores must be a list of strings")

        return FunctionsConfig(
            functions_path=self._resolve_path(functions.get("source")),
            ignores=tuple(ignores),
        )

    def _resolve_path(self, value: Any) -> Optional[Path]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise FirebaseJsonError(f"Expected a path string, got {value!r}")
        base = self.base_dir if self.base_dir is not None else Path.cwd()
        return base / value

    @staticmethod
    def _skip(section: str, value: Any):
        if value is not None:
            logger.debug("Ignoring '%s' section of type %s", section, type(value).__name__)
