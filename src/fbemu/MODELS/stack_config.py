"""
Models for the fbemu.yml stack file.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .emulator import Emulator

INLINE_KEYS = ("emulators", "hosting", "storage_rules", "firestore_rules", "firestore_indexes", "functions")


class DockerSection(BaseModel):
    """
    Image and identity of the container.
    """
    model_config = ConfigDict(extra="forbid")

    image: Optional[str] = None
    user_id: Optional[int] = Field(default=None, ge=0)
    group_id: Optional[int] = Field(default=None, ge=0)
    # Names of environment variables holding the ids
    user_id_env: Optional[str] = None
    group_id_env: Optional[str] = None


class FunctionsSection(BaseModel):
    """
    Cloud functions sources.
    """
    model_config = ConfigDict(extra="forbid")

    source: str
    ignores: List[str] = []


class StackConfig(BaseModel):
    """
    Complete configuration of an emulator stack.

    The emulators are described either by a firebase.json file or inline,
    never both. Inline emulators map to a fixed port, or to null for a port
    assigned when the container starts.
    """
    model_config = ConfigDict(extra="forbid")

    firebase_version: Optional[str] = None
    project_id: Optional[str] = None
    token: Optional[str] = None
    java_tool_options: Optional[str] = None
    emulator_data: Optional[str] = None
    docker: DockerSection = Field(default_factory=DockerSection)
    env_file: List[str] = []

    firebase_json: Optional[str] = None

    emulators: Optional[Dict[Emulator, Optional[int]]] = None
    hosting: Optional[str] = None
    storage_rules: Optional[str] = None
    firestore_rules: Optional[str] = None
    firestore_indexes: Optional[str] = None
    functions: Optional[FunctionsSection] = None

    @field_validator("env_file", mode="before")
    @classmethod
    def single_env_file(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("emulators", mode="before")
    @classmethod
    def emulator_names(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {Emulator.parse(key) if isinstance(key, str) else key: port for key, port in value.items()}

    @field_validator("emulators")
    @classmethod
    def port_range(cls, value: Optional[Dict[Emulator, Optional[int]]]) -> Any:
        for emulator, port in (value or {}).items():
            if port is not None and not 1 <= port <= 65535:
                raise ValueError(f"Port {port} of {emulator.name} is out of range")
        return value

    @model_validator(mode="after")
    def one_firebase_source(self) -> "StackConfig":
        if self.firebase_json is not None:
            inline = [key for key in INLINE_KEYS if getattr(self, key) is not None]
            if inline:
                raise ValueError(f"'firebase_json' cannot be combined with {', '.join(inline)}")
        return self

    @property
    def is_inline(self) -> bool:
        return any(getattr(self, key) is not None for key in INLINE_KEYS)
