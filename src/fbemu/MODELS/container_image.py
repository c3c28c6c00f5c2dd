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
Models representing a synthesized image: the ordered build instructions and
the files they copy from the build context.
"""
import hashlib
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .. import constants
from .dockerfile_ast import DockerfileAST


class ContextFile(BaseModel):
    """
    A file (or directory) placed in the build context, either copied from
    the host or generated in memory.
    """
    source: Optional[Path] = None
    content: Optional[str] = None

    @model_validator(mode='after')
    def check_exactly_one_origin(self) -> 'ContextFile':
        if (self.source is None) == (self.content is None):
            raise ValueError("A context file needs either a source path or generated content")
        return self


class VolumeMount(BaseModel):
    """
    Defines a mapping between a host path and a container path.
    """
    source: Path
    target: str
    read_only: bool = False


class ContainerImage(BaseModel):
    """
    The build specification handed to the container runtime.

    ``dockerfile`` is authoritative; the remaining fields summarize it for
    callers that need the entrypoint, volumes or identity without walking
    the instructions.
    """
    base_image: str
    dockerfile: DockerfileAST = Field(default_factory=DockerfileAST)
    context_files: Dict[str, ContextFile] = {}

    env_vars: Dict[str, str] = {}
    working_directory: Optional[str] = None
    user: Optional[str] = None
    volumes: List[str] = []

    entrypoint: List[str] = []
    cmd: List[str] = []

    downloads: List[str] = []

    @property
    def command(self) -> List[str]:
        """ENTRYPOINT followed by CMD, as the container will execute it."""
        return self.entrypoint + self.cmd

    def fingerprint(self) -> str:
        """
        A stable digest of the instructions and context file origins.
        Identical configurations map to the same image tag.
        """
        digest = hashlib.sha256()
        for inst in self.dockerfile.instructions:
            digest.update(inst.raw.encode("utf-8"))
            digest.update(b"\n")
        for name in sorted(self.context_files):
            ctx = self.context_files[name]
            digest.update(name.encode("utf-8"))
            digest.update((ctx.content if ctx.content is not None else str(ctx.source)).encode("utf-8"))
        return digest.hexdigest()[:16]

    @property
    def tag(self) -> str:
        return f"{constants.IMAGE_REPOSITORY}:{self.fingerprint()}"
