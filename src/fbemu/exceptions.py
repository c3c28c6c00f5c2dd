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
Exception hierarchy for fbemu.

Errors raised by the docker SDK while building, starting or stopping a
container are not wrapped and reach the caller unchanged.
"""


class FbemuError(Exception):
    """Base exception for all application-specific errors."""

    pass


# --- 1. Invalid or missing configuration, raised before anything is built ---
class ConfigurationError(FbemuError):
    """Raised for invalid option combinations or an unresolvable configuration."""

    pass


class StackFileError(ConfigurationError):
    """Raised when a stack file is missing, is not valid YAML or fails validation."""

    pass


class EmulatorNotEnabledError(ConfigurationError):
    """Raised when a port or endpoint is requested for an emulator that is not registered."""

    pass


# --- 2. Files that cannot be read or produced ---
class EmulatorIOError(FbemuError):
    """Base class for IO-related errors."""

    pass


class FirebaseJsonError(EmulatorIOError):
    """Raised when a firebase.json document cannot be read, decoded or generated."""

    pass


class ConfigFileMissingError(EmulatorIOError):
    """Raised when a rules, indexes, functions or firebase.json path does not exist."""

    pass


# --- 3. Container lifecycle ---
class ContainerError(FbemuError):
    """Base class for container lifecycle errors owned by fbemu."""

    pass


class ContainerStateError(ContainerError):
    """Raised when a lifecycle call does not match the current container state."""

    pass


class ContainerStartupTimeout(ContainerError):
    """Raised when the emulator hub did not report readiness in time."""

    pass
