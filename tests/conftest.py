import json

import pytest

from fbemu.RUNNERS.container_runtime import ContainerRuntime


class FakeRuntime(ContainerRuntime):
    """Records every call; dynamic ports are mapped to internal port + 30000."""

    def __init__(self, host="localhost"):
        self.calls = []
        self.host = host
        self.ports = {}

    def build_image(self, image):
        self.calls.append(("build_image", image.tag))
        return image.tag

    def run(self, image_ref, ports, volumes):
        self.calls.append(("run", image_ref, dict(ports), list(volumes)))
        self.ports = {p: (h if h is not None else p + 30000) for p, h in ports.items()}
        return "c0ffee"

    def stop(self, container_id, sig, timeout):
        self.calls.append(("stop", container_id, sig))

    def remove(self, container_id):
        self.calls.append(("remove", container_id))

    def get_mapped_port(self, container_id, container_port):
        self.calls.append(("get_mapped_port", container_id, container_port))
        return self.ports[container_port]

    def get_host(self):
        return self.host

    def wait_for_log(self, container_id, pattern, timeout):
        self.calls.append(("wait_for_log", container_id, pattern))

    def names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def firebase_project(tmp_path):
    """A project directory with rules, indexes, functions and hosting content."""
    (tmp_path / "firestore.rules").write_text("rules_version = '2';\n")
    (tmp_path / "firestore.indexes.json").write_text('{"indexes": []}\n')
    (tmp_path / "storage.rules").write_text("rules_version = '2';\n")
    (tmp_path / "functions").mkdir()
    (tmp_path / "functions" / "index.js").write_text("exports.hello = () => {};\n")
    (tmp_path / "public").mkdir()
    (tmp_path / "public" / "index.html").write_text("<h1>hi</h1>\n")
    return tmp_path


@pytest.fixture
def write_firebase_json(tmp_path):
    def _write(document, name="firebase.json"):
        path = tmp_path / name
        path.write_text(json.dumps(document))
        return path
    return _write
