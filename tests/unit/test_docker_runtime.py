import signal
from pathlib import Path
from unittest import mock

import pytest

from fbemu.exceptions import ContainerStartupTimeout, ContainerStateError
from fbemu.MODELS.container_image import ContainerImage, VolumeMount
from fbemu.RUNNERS import docker_runtime
from fbemu.RUNNERS.docker_runtime import DockerRuntime


@pytest.fixture
def client():
    client = mock.MagicMock()
    container = client.containers.get.return_value
    container.short_id = "c0ffee"
    client.containers.run.return_value.id = "c0ffee1234"
    client.containers.run.return_value.short_id = "c0ffee"
    return client


class TestDockerRuntime:
    """Tests for the docker SDK runtime."""

    def test_build_image(self, client):
        """The Dockerfile is written to a build context and tagged with the image tag."""
        seen = {}

        def fake_build(path, tag, rm):
            seen["dockerfile"] = (Path(path) / "Dockerfile").read_text()
            return mock.MagicMock(), [{"stream": "Step 1/1\n"}, {"aux": {}}]

        client.images.build.side_effect = fake_build
        image = ContainerImage(base_image="node:23-alpine")
        image.dockerfile.add("FROM", "node:23-alpine")

        assert DockerRuntime(client).build_image(image) == image.tag
        assert "FROM node:23-alpine" in seen["dockerfile"]
        assert client.images.build.call_args.kwargs["tag"] == image.tag

    def test_run(self, client, tmp_path):
        """Ports and volumes are passed to docker in SDK form."""
        volumes = [VolumeMount(source=tmp_path, target="/srv/firebase/public", read_only=True)]
        container_id = DockerRuntime(client).run("img:1", {8080: 8080, 9099: None}, volumes)

        assert container_id == "c0ffee1234"
        client.containers.run.assert_called_once_with(
            "img:1",
            detach=True,
            ports={"8080/tcp": 8080, "9099/tcp": None},
            volumes={str(tmp_path.resolve()): {"bind": "/srv/firebase/public", "mode": "ro"}},
        )

    def test_stop_uses_signal(self, client):
        """Stop sends the given signal and waits for the exit."""
        DockerRuntime(client).stop("c0ffee1234", signal.SIGTERM, 10)
        container = client.containers.get.return_value
        container.kill.assert_called_once_with(signal="SIGTERM")
        container.wait.assert_called_once_with(timeout=10)

    def test_remove(self, client):
        """Remove forces removal of the container."""
        DockerRuntime(client).remove("c0ffee1234")
        client.containers.get.return_value.remove.assert_called_once_with(force=True)

    def test_get_mapped_port(self, client):
        """The host port is read from the refreshed container."""
        container = client.containers.get.return_value
        container.ports = {"8080/tcp": [{"HostIp": "0.0.0.0", "HostPort": "49153"}]}
        assert DockerRuntime(client).get_mapped_port("c0ffee1234", 8080) == 49153
        container.reload.assert_called_once()

    def test_get_mapped_port_unpublished(self, client):
        """A port docker did not publish is a state error."""
        client.containers.get.return_value.ports = {}
        with pytest.raises(ContainerStateError):
            DockerRuntime(client).get_mapped_port("c0ffee1234", 8080)

    @pytest.mark.parametrize("docker_host, expected", [
        ("tcp://10.0.0.5:2375", "10.0.0.5"),
        ("unix:///var/run/docker.sock", "localhost"),
        ("", "localhost"),
    ])
    def test_get_host(self, client, monkeypatch, docker_host, expected):
        """The host comes from a tcp DOCKER_HOST, otherwise localhost."""
        monkeypatch.setenv("DOCKER_HOST", docker_host)
        assert DockerRuntime(client).get_host() == expected

    def test_wait_for_log(self, client):
        """Logs are polled until the pattern appears."""
        container = client.containers.get.return_value
        container.logs.side_effect = [
            b"i  emulators: Starting emulators\n",
            b"i  emulators: Starting emulators\ni  hub: Emulator Hub running at 127.0.0.1:4400\n",
        ]
        with mock.patch.object(docker_runtime, "LOG_POLL_INTERVAL", 0):
            DockerRuntime(client).wait_for_log("c0ffee1234", ".*Emulator Hub running at.*", 5)
        assert container.logs.call_count == 2

    def test_wait_for_log_timeout(self, client):
        """A pattern that never appears times out."""
        client.containers.get.return_value.logs.return_value = b"nothing here\n"
        with pytest.raises(ContainerStartupTimeout):
            DockerRuntime(client).wait_for_log("c0ffee1234", ".*Emulator Hub running at.*", 0)

    def test_client_created_lazily(self):
        """The docker client is only created on first use."""
        with mock.patch("docker.from_env") as from_env:
            runtime = DockerRuntime()
            from_env.assert_not_called()
            assert runtime.client is from_env.return_value
