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
Models for the emulators of the Firebase suite and how they are exposed.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class Emulator(Enum):
    """
    The emulators (and management endpoints) that can run inside the container.

    Each member carries the port the emulator listens on inside the container,
    the key of its block in the ``emulators`` section of firebase.json and the
    identifier passed to ``firebase setup:emulators:<id>``. Emulators without
    a download identifier ship with the firebase-tools package.
    """

    AUTHENTICATION = (9099, "auth", None)
    EMULATOR_SUITE_UI = (4000, "ui", "ui")
    EMULATOR_HUB = (4400, "hub", None)
    LOGGING = (4500, "logging", None)
    CLOUD_FUNCTIONS = (5001, "functions", None)
    EVENT_ARC = (9299, "eventarc", None)
    REALTIME_DATABASE = (9000, "database", "database")
    CLOUD_FIRESTORE = (8080, "firestore", "firestore")
    # Only configurable through the websocketPort of the firestore block
    CLOUD_FIRESTORE_WS = (9150, None, None)
    CLOUD_STORAGE = (9199, "storage", "storage")
    FIREBASE_HOSTING = (5000, "hosting", None)
    PUB_SUB = (8085, "pubsub", "pubsub")

    def __init__(self, internal_port: int, config_property: Optional[str], download_id: Optional[str]):
        self.internal_port = internal_port
        self.config_property = config_property
        self.download_id = download_id

    @property
    def is_downloadable(self) -> bool:
        return self.download_id is not None

    @classmethod
    def parse(cls, name: str) -> "Emulator":
        """
        Looks up an emulator by member name (case-insensitive) or firebase.json key.

        :param name: e.g. "CLOUD_FIRESTORE", "cloud_firestore" or "firestore".
        :return: The matching emulator.
        :raises ValueError: If nothing matches.
        """
        key = name.strip()
        member = cls.__members__.get(key.upper())
        if member is not None:
            return member
        for emulator in cls:
            if emulator.config_property == key.lower():
                return emulator
        raise ValueError(f"Unknown emulator '{name}'")

    def __repr__(self) -> str:
        return f"<Emulator.{self.name}>"


class ExposedPort(BaseModel):
    """
    How an emulator port is published on the host: on a fixed port chosen by
    the caller, or on a port the container runtime allocates at start.
    """
    model_config = ConfigDict(frozen=True)

    fixed_port: Optional[StrictInt] = Field(default=None, ge=1, le=65535)

    @classmethod
    def fixed(cls, port: int) -> "ExposedPort":
        return cls(fixed_port=port)

    @classmethod
    def dynamic(cls) -> "ExposedPort":
        return RANDOM_PORT

    @property
    def is_fixed(self) -> bool:
        return self.fixed_port is not None


RANDOM_PORT = ExposedPort()
