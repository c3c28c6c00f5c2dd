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
Generates the firebase.json copied into the image when no custom file is used.
"""
import json
import logging
from typing import Any, Dict

from .. import constants
from ..exceptions import FirebaseJsonError
from ..MODELS.emulator import Emulator, ExposedPort
from ..MODELS.emulator_config import FirebaseConfig

logger = logging.getLogger(__name__)


class FirebaseJsonBuilder:
    """
    Renders a FirebaseConfig as a firebase.json document.

    File references point at the names the image builder copies the files
    to, relative to the firebase root inside the image. Every emulator binds
    to all interfaces so the published ports are reachable. Dynamic ports
    are left out: the emulator then listens on its default port, which is
    the internal port the container publishes.
    """
    def __init__(self, firebase_config: FirebaseConfig):
        self.firebase_config = firebase_config

    def build(self) -> Dict[str, Any]:
        """
        Builds the document as a dictionary.
        """
        document: Dict[str, Any] = {}
        cfg = self.firebase_config

        if cfg.hosting_config.hosting_content_dir is not None:
            document["hosting"] = {"public": constants.HOSTING_DIR}

        if cfg.storage_config.rules_file is not None:
            document["storage"] = {"rules": constants.STORAGE_RULES}

        firestore = {}
        if cfg.firestore_config.rules_file is not None:
            firestore["rules"] = constants.FIRESTORE_RULES
        if cfg.firestore_config.indexes_file is not None:
            firestore["indexes"] = constants.FIRESTORE_INDEXES
        if firestore:
            document["firestore"] = firestore

        functions: Dict[str, Any] = {}
        if cfg.functions_config.functions_path is not None:
            functions["source"] = constants.FUNCTIONS_DIR
        if cfg.functions_config.ignores:
            functions["ignores"] = list(cfg.functions_config.ignores)
        if functions:
            document["functions"] = functions

        document["emulators"] = self._emulators()
        return document

    def build_firebase_config(self) -> str:
        """
        Builds the document as JSON text.

        :raises FirebaseJsonError: If the document cannot be serialized.
        """
        try:
            return json.dumps(self.build(), indent=2) + "\n"
        except (TypeError, ValueError) as e:
            raise FirebaseJsonError(f"Failed to generate firebase.json: {e}") from e

    def _emulators(self) -> Dict[str, Any]:
        services = self.firebase_config.services
        emulators: Dict[str, Any] = {}

        for emulator in Emulator:
            if emulator not in services or emulator.config_property is None:
                continue
            block = self._block(services[emulator])
            if emulator is Emulator.EMULATOR_SUITE_UI:
                block["enabled"] = True
            emulators[emulator.config_property] = block

        ws = services.get(Emulator.CLOUD_FIRESTORE_WS)
        if ws is not None:
            if Emulator.CLOUD_FIRESTORE.config_property in emulators:
                port = ws.fixed_port if ws.is_fixed else Emulator.CLOUD_FIRESTORE_WS.internal_port
                emulators[Emulator.CLOUD_FIRESTORE.config_property]["websocketPort"] = port
            else:
                logger.warning("The Firestore websocket is enabled without the Firestore emulator; ignoring it")

        return emulators

    @staticmethod
    def _block(exposed: ExposedPort) -> Dict[str, Any]:
        block: Dict[str, Any] = {"host": constants.EMULATOR_HOST}
        if exposed.is_fixed:
            block["port"] = exposed.fixed_port
        return block
