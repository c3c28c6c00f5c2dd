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
Converters for writing a synthesized image as a Dockerfile and build context.
"""
import logging
import os
import shutil

from jinja2 import Template

from ..exceptions import ConfigFileMissingError
from ..MODELS.container_image import ContainerImage

logger = logging.getLogger(__name__)

DOCKERFILE_TEMPLATE = """\
# Firebase emulators, generated by fbemu ({{ tag }})
{% for inst in instructions -%}
{{ inst.raw }}
{% endfor -%}
"""


class DockerfileConverter:
    """
    Renders a ContainerImage into a directory docker can build from.
    """

    def __init__(self, image: ContainerImage):
        """
        Initializes the Dockerfile converter.

        :param image: The synthesized image.
        """
        self.image = image
        self.template = Template(DOCKERFILE_TEMPLATE)

    def render(self) -> str:
        """
        Renders the Dockerfile text.
        """
        return self.template.render(
            tag=self.image.tag,
            instructions=self.image.dockerfile.instructions,
        )

    def convert(self, output_dir: str) -> str:
        """
        Writes the Dockerfile and every context file.

        :param output_dir: The build context directory, created if missing.
        :return: The path to the output directory.
        """
        os.makedirs(output_dir, exist_ok=True)

        with open(os.path.join(output_dir, "Dockerfile"), "w", encoding="utf-8") as f:
            f.write(self.render())

        for name, ctx in self.image.context_files.items():
            target = os.path.join(output_dir, name)
            if ctx.content is not None:
                with open(target, "w", encoding="utf-8") as f:
                    f.write(ctx.content)
            elif ctx.source.is_dir():
                shutil.copytree(ctx.source, target, dirs_exist_ok=True)
            elif ctx.source.is_file():
                shutil.copy2(ctx.source, target)
            else:
                raise ConfigFileMissingError(f"File to include in the image does not exist: {ctx.source}")

        logger.info("Build context for %s written to %s", self.image.tag, output_dir)
        return output_dir
