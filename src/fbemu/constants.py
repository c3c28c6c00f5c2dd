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
Locations and defaults shared by the image builder, the firebase.json
generator and the container façade. The in-image paths must match what the
firebase CLI expects once it runs from FIREBASE_ROOT.
"""

FIREBASE_ROOT = "/srv/firebase"
FIREBASE_HOSTING_PATH = FIREBASE_ROOT + "/public"
EMULATOR_DATA_PATH = FIREBASE_ROOT + "/data"
EMULATOR_EXPORT_PATH = EMULATOR_DATA_PATH + "/emulator-data"

FIREBASE_JSON = "firebase.json"
FIRESTORE_RULES = "firestore.rules"
FIRESTORE_INDEXES = "firestore.indexes.json"
STORAGE_RULES = "storage.rules"
FUNCTIONS_DIR = "functions"
HOSTING_DIR = "public"

FIREBASE_EXECUTABLE = "/usr/local/bin/firebase"

DEFAULT_IMAGE_NAME = "node:23-alpine"
DEFAULT_FIREBASE_VERSION = "latest"
DEFAULT_FIREBASE_JSON_PATH = "firebase.json"

# uid/gid of the "node" user shipped with the node images
DEFAULT_USER_ID = 1000
DEFAULT_GROUP_ID = 1000
DEFAULT_GROUP_NAME = "node"
RUNNER_NAME = "runner"

EMULATOR_HOST = "0.0.0.0"

IMAGE_REPOSITORY = "localhost/fbemu/firebase"
READY_LOG_PATTERN = ".*Emulator Hub running at.*"
DEFAULT_STARTUP_TIMEOUT = 120.0
DEFAULT_STOP_TIMEOUT = 30.0
