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
Parser for fbemu.yml stack files.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..BUILDERS.config_builder import EmulatorConfigBuilder
from ..exceptions import StackFileError
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MODELS.stack_config import StackConfig
from ..UTILS.string_interpolation import EnvironmentInterpolator

logger = logging.getLogger(__name__)


class StackParser:
    """
    Parser for fbemu.yml files.

    String values are interpolated against the process environment, the
    stack's ``env_file`` entries and an optional explicit context, in that
    order of increasing precedence. Relative paths are resolved against the
    directory of the stack file.
    """
    def __init__(self, context: Optional[Dict[str, str]] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: Variables that take precedence over the environment.
        """
        self.context = context or {}
        self.base_dir = Path.cwd()
        self.environment = EnvironmentManager(str(self.base_dir))

    def parse(self, stack_path: str) -> StackConfig:
        """
        Parses a stack file from a path.

        :param stack_path: Path to the stack file.
        :return: Parsed configuration.
        :raises StackFileError: If the file is missing or invalid.
        """
        try:
            with open(stack_path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            raise StackFileError(f"{stack_path} not found.") from None
        except OSError as e:
            raise StackFileError(f"Cannot read {stack_path}: {e}") from e
        return self.parse_from_string(content, base_dir=os.path.dirname(os.path.abspath(stack_path)))

    def parse_from_string(self, content: str, base_dir: Optional[str] = None) -> StackConfig:
        """
        Parses a stack file from a string.

        :param content: YAML content of the stack file.
        :param base_dir: Directory relative paths are resolved against.
        :return: Parsed configuration.
        """
        if base_dir is not None:
            self.base_dir = Path(base_dir)
            self.environment = EnvironmentManager(str(self.base_dir))

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise StackFileError(f"Invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise StackFileError("The stack file must contain a mapping")

        env_files = data.get("env_file") or []
        if isinstance(env_files, str):
            env_files = [env_files]
        context = self.environment.get_merged_environment(
            [self._interpolate(f, dict(os.environ, **self.context)) for f in env_files],
            self.context,
        )
        data = self._interpolate(data, context)

        try:
            return StackConfig.model_validate(data)
        except ValidationError as e:
            raise StackFileError(f"Invalid stack file:\n{e}") from e

    def to_builder(self, stack: StackConfig) -> EmulatorConfigBuilder:
        """
        Applies a parsed stack to a new EmulatorConfigBuilder.

        :param stack: The parsed stack.
        :return: The builder, ready for build_config() or build().
        """
        builder = EmulatorConfigBuilder(default_firebase_json=self.base_dir / "firebase.json",
                                        environment=self.environment)

        if stack.firebase_version is not None:
            builder.with_firebase_version(stack.firebase_version)
        if stack.project_id is not None:
            builder.with_project_id(stack.project_id)
        if stack.token is not None:
            builder.with_token(stack.token)
        if stack.java_tool_options is not None:
            builder.with_java_tool_options(stack.java_tool_options)
        if stack.emulator_data is not None:
            builder.with_emulator_data(self._resolve(stack.emulator_data))

        docker = builder.with_docker_config()
        if stack.docker.image is not None:
            docker.with_image(stack.docker.image)
        if stack.docker.user_id is not None:
            docker.with_user_id(stack.docker.user_id)
        if stack.docker.group_id is not None:
            docker.with_group_id(stack.docker.group_id)
        if stack.docker.user_id_env is not None:
            docker.with_user_id_from_env(stack.docker.user_id_env, stack.env_file)
        if stack.docker.group_id_env is not None:
            docker.with_group_id_from_env(stack.docker.group_id_env, stack.env_file)
        docker.done()

        if stack.firebase_json is not None:
            firebase_json = self._resolve(stack.firebase_json)
            builder.read_from_firebase_json(firebase_json, base_dir=firebase_json.parent)
        elif stack.is_inline:
            self._apply_inline(stack, builder)
        return builder

    def load(self, stack_path: str) -> EmulatorConfigBuilder:
        """
        Parses a stack file and applies it to a new builder.
        """
        return self.to_builder(self.parse(stack_path))

    def _apply_inline(self, stack: StackConfig, builder: EmulatorConfigBuilder):
        firebase = builder.with_firebase_config()
        if stack.hosting is not None:
            firebase.with_hosting_path(self._resolve(stack.hosting))
        if stack.storage_rules is not None:
            firebase.with_storage_rules(self._resolve(stack.storage_rules))
        if stack.firestore_rules is not None:
            firebase.with_firestore_rules(self._resolve(stack.firestore_rules))
        if stack.firestore_indexes is not None:
            firebase.with_firestore_indexes(self._resolve(stack.firestore_indexes))
        if stack.functions is not None:
            firebase.with_functions(self._resolve(stack.functions.source), stack.functions.ignores)

        for emulator, port in (stack.emulators or {}).items():
            if port is None:
                firebase.with_emulator(emulator)
            else:
                firebase.with_emulator_on_fixed_port(emulator, port)
        firebase.done()

    def _resolve(self, value: str) -> Path:
        return self.base_dir / os.path.expanduser(value)

    def _interpolate(self, node: Any, context: Dict[str, str]) -> Any:
        if isinstance(node, str):
            try:
                return EnvironmentInterpolator.interpolate(node, context)
            except KeyError as e:
                raise StackFileError(f"Variable {e.args[0]} is not set") from None
        if isinstance(node, dict):
            return {key: self._interpolate(value, context) for key, value in node.items()}
        if isinstance(node, list):
            return [self._interpolate(value, context) for value in node]
        return node
