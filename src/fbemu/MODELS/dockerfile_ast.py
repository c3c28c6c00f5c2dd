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
Models for the Dockerfile Abstract Syntax Tree.
"""
import json
from typing import List

from pydantic import BaseModel

# Instructions written in exec (JSON array) form
EXEC_FORM = {"ENTRYPOINT", "CMD", "VOLUME"}


class Instruction(BaseModel):
    """
    Represents a single instruction in a Dockerfile.
    """
    instruction: str
    arguments: List[str]

    @property
    def raw(self) -> str:
        """The instruction as it appears in a Dockerfile."""
        if self.instruction in EXEC_FORM:
            return f"{self.instruction} {json.dumps(self.arguments, ensure_ascii=False)}"
        if self.instruction == "ENV":
            key, value = self.arguments
            # Dollar signs stay literal
            quoted = json.dumps(value, ensure_ascii=False).replace("$", "\\$")
            return f"ENV {key}={quoted}"
        return f"{self.instruction} {' '.join(self.arguments)}"


class DockerfileAST(BaseModel):
    """
    Represents the complete Abstract Syntax Tree of a Dockerfile.
    """
    instructions: List[Instruction] = []

    def add(self, instruction: str, *arguments: str) -> Instruction:
        inst = Instruction(instruction=instruction, arguments=list(arguments))
        self.instructions.append(inst)
        return inst

    def find(self, instruction: str) -> List[Instruction]:
        return [i for i in self.instructions if i.instruction == instruction]

    def index_of(self, instruction: Instruction) -> int:
        return self.instructions.index(instruction)

    def __len__(self) -> int:
        return len(self.instructions)
