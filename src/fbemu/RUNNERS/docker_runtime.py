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
Container runtime backed by the local docker daemon.
"""
import logging
import os
import re
import signal
import tempfile
from typing import Dict, List, Optional
from urllib.parse import urlparse

import docker
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_delay, wait_fixed

from ..CONVERTERS.to_dockerfile import DockerfileConverter
from ..exceptions import ContainerStartupTimeout, ContainerStateError
from ..MODELS.container_image import ContainerImage, VolumeMount
from .container_runtime import ContainerRuntime

logger = logging.getLogger(__name__)

LOG_POLL_INTERVAL = 0.5


class _LogNotSeen(Exception):
    pass


class DockerRuntime(ContainerRuntime):
    """
    Talks to docker through the docker SDK. The client is created on first
    use from the usual DOCKER_* environment variables.
    """

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def build_image(self, image: ContainerImage) -> str:
        tag = image.tag
        with tempfile.TemporaryDirectory(prefix="fbemu-") as context_dir:
            DockerfileConverter(image).convert(context_dir)
            logger.info("Building image %s", tag)
            _, build_logs = self.client.images.build(path=context_dir, tag=tag, rm=True)
            for chunk in build_logs:
                line = chunk.get("stream", "").rstrip()
                if line:
                    logger.debug(line)
        return tag

    def run(self,
            image_ref: str,
            ports: Dict[int, Optional[int]],
            volumes: List[VolumeMount]) -> str:
        port_map = {f"{container_port}/tcp": host_port for container_port, host_port in ports.items()}
        volume_map = {
            str(mount.source.resolve()): {"bind": mount.target, "mode": "ro" if mount.read_only else "rw"}
            for mount in volumes
        }
        container = self.client.containers.run(
            image_ref,
            detach=True,
            ports=port_map,
            volumes=volume_map,
        )
        logger.info("Started container %s from %s", container.short_id, image_ref)
        return container.id

    def stop(self, container_id: str, sig: signal.Signals, timeout: float):
        container = self.client.containers.get(container_id)
        logger.info("Sending %s to container %s", sig.name, container.short_id)
        container.kill(signal=sig.name)
        container.wait(timeout=timeout)

    def remove(self, container_id: str):
        self.client.containers.get(container_id).remove(force=True)

    def get_mapped_port(self, container_id: str, container_port: int) -> int:
        container = self.client.containers.get(container_id)
        container.reload()
        bindings = container.ports.get(f"{container_port}/tcp")
        if not bindings:
            raise ContainerStateError(f"Container port {container_port} is not published")
        return int(bindings[0]["HostPort"])

    def get_host(self) -> str:
        docker_host = os.environ.get("DOCKER_HOST", "")
        if docker_host.startswith("tcp://"):
            return urlparse(docker_host).hostname or "localhost"
        return "localhost"

    def wait_for_log(self, container_id: str, pattern: str, timeout: float):
        container = self.client.containers.get(container_id)
        regex = re.compile(pattern)

        @retry(stop=stop_after_delay(timeout),
               wait=wait_fixed(LOG_POLL_INTERVAL),
               retry=retry_if_exception_type(_LogNotSeen))
        def _poll():
            logs = container.logs().decode("utf-8", errors="replace")
            if not any(regex.match(line) for line in logs.splitlines()):
                raise _LogNotSeen(pattern)

        try:
            _poll()
        except RetryError:
            raise ContainerStartupTimeout(
                f"Container {container.short_id} did not log /{pattern}/ within {timeout}s"
            ) from None
        logger.info("Container %s is ready", container.short_id)
