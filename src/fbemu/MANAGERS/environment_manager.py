"""
Managers for handling environment variables and .env file resolution.
"""
import logging
import os
from typing import Dict, Iterable, Optional

from dotenv import dotenv_values

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EnvironmentManager:
    """
    Resolves values from the process environment and .env files.
    """
    def __init__(self, base_dir: str = "."):
        """
        Initializes the environment manager.

        :param base_dir: The base directory for resolving relative paths to .env files.
        """
        self.base_dir = base_dir

    def get_merged_environment(self,
                               env_files: Iterable[str] = (),
                               explicit_env: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """
        Merges the current process environment, .env files and explicit values.
        Later .env files override earlier ones; explicit values override everything.

        :param env_files: Paths to .env files; missing files are skipped.
        :param explicit_env: Values that take precedence over all other sources.
        :return: The merged environment.
        """
        merged_env = os.environ.copy()

        for env_file in env_files:
            file_path = os.path.join(self.base_dir, env_file)
            if not os.path.exists(file_path):
                logger.debug("Skipping missing env file %s", file_path)
                continue
            values = dotenv_values(file_path)
            merged_env.update({k: v for k, v in values.items() if v is not None})

        if explicit_env:
            merged_env.update(explicit_env)

        return merged_env

    def get_int(self, name: str, env_files: Iterable[str] = ()) -> Optional[int]:
        """
        Reads a numeric value such as a uid or gid.

        :param name: Name of the variable.
        :param env_files: .env files consulted in addition to the process environment.
        :return: The value, or None when the variable is unset or empty.
        :raises ConfigurationError: If the value is not an integer.
        """
        value = self.get_merged_environment(env_files).get(name, "").strip()
        if not value:
            logger.debug("Environment variable %s is not set", name)
            return None
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"Environment variable {name} must be numeric, got '{value}'")
