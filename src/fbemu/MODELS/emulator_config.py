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
Immutable models describing a fully resolved emulator configuration.
"""
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .. import constants
from .emulator import Emulator, ExposedPort


class DockerConfig(BaseModel):
    """
    The base image and the numeric identity the emulators run as.
    Either id may be set without the other; the image builder fills in defaults.
    """
    model_config = ConfigDict(frozen=True)

    image_name: str = constants.DEFAULT_IMAGE_NAME
    user_id: Optional[int] = Field(default=None, ge=0)
    group_id: Optional[int] = Field(default=None, ge=0)


class HostingConfig(BaseModel):
    """Directory holding the static hosting content."""
    model_config = ConfigDict(frozen=True)

    hosting_content_dir: Optional[Path] = None


class StorageConfig(BaseModel):
    """Cloud storage security rules."""
    model_config = ConfigDict(frozen=True)

    rules_file: Optional[Path] = None


class FirestoreConfig(BaseModel):
    """Firestore security rules and index definitions."""
    model_config = ConfigDict(frozen=True)

    rules_file: Optional[Path] = None
    indexes_file: Optional[Path] = None


class FunctionsConfig(BaseModel):
    """Cloud functions source directory and the globs the CLI skips when deploying it."""
    model_config = ConfigDict(frozen=True)

    functions_path: Optional[Path] = None
    ignores: Tuple[str, ...] = ()


class FirebaseConfig(BaseModel):
    """
    Everything that can be expressed in a firebase.json file: the file
    bundles for each product and the emulators that are enabled, each with
    exactly one exposure policy.
    """
    model_config = ConfigDict(frozen=True)

    hosting_config: HostingConfig = Field(default_factory=HostingConfig)
    storage_config: StorageConfig = Field(default_factory=StorageConfig)
    firestore_config: FirestoreConfig = Field(default_factory=FirestoreConfig)
    functions_config: FunctionsConfig = Field(default_factory=FunctionsConfig)
    services: Dict[Emulator, ExposedPort] = Field(default_factory=dict, validate_default=True)

    @field_validator("services")
    @classmethod
    def read_only_services(cls, value: Dict[Emulator, ExposedPort]) -> Mapping[Emulator, ExposedPort]:
        return MappingProxyType(dict(value))

    def is_enabled(self, emulator: Emulator) -> bool:
        return emulator in self.services


class EmulatorConfig(BaseModel):
    """
    The top level configuration consumed by the image builder and the container.

    ``custom_firebase_json`` is only set when the firebase configuration came
    from that file; the file is then copied into the image as is instead of
    being generated.
    """
    model_config = ConfigDict(frozen=True)

    docker_config: DockerConfig = Field(default_factory=DockerConfig)
    firebase_version: str = constants.DEFAULT_FIREBASE_VERSION
    project_id: Optional[str] = None
    token: Optional[str] = None
    custom_firebase_json: Optional[Path] = None
    java_tool_options: Optional[str] = None
    emulator_data: Optional[Path] = None
    firebase_config: FirebaseConfig = Field(default_factory=FirebaseConfig)

    @property
    def services(self) -> Mapping[Emulator, ExposedPort]:
        return self.firebase_config.services
