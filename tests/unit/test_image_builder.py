import json
import logging

import pytest

from fbemu.BUILDERS.config_builder import EmulatorConfigBuilder
from fbemu.BUILDERS.image_builder import ImageBuilder
from fbemu.exceptions import ConfigFileMissingError, ConfigurationError
from fbemu.MODELS.emulator import Emulator


def builder(tmp_path):
    return EmulatorConfigBuilder(default_firebase_json=tmp_path / "missing.json")


def build(config_builder):
    return ImageBuilder(config_builder.build_config()).build()


def instruction_index(image, name, prefix=""):
    for i, inst in enumerate(image.dockerfile.instructions):
        if inst.instruction == name and inst.raw.startswith(f"{name} {prefix}"):
            return i
    raise AssertionError(f"{name} {prefix} not found")


class TestValidation:
    """Tests for the checks run before any instruction is produced."""

    def test_auth_requires_project_id(self, tmp_path):
        """The auth emulator cannot run without a project id."""
        config = (builder(tmp_path)
                  .with_firebase_config().with_emulator(Emulator.AUTHENTICATION).done()
                  .build_config())
        with pytest.raises(ConfigurationError):
            ImageBuilder(config).build()

    def test_ui_advisories(self, tmp_path, caplog):
        """A UI without hub, logging or websocket ports is reported but allowed."""
        config = (builder(tmp_path)
                  .with_firebase_config()
                  .with_emulators(Emulator.EMULATOR_SUITE_UI, Emulator.CLOUD_FIRESTORE)
                  .done()
                  .build_config())
        with caplog.at_level(logging.INFO):
            ImageBuilder(config).validate()

        messages = {(r.levelno, r.getMessage()) for r in caplog.records}
        assert any(level == logging.INFO and "Hub" in msg for level, msg in messages)
        assert any(level == logging.INFO and "Logging" in msg for level, msg in messages)
        assert any(level == logging.WARNING and "Websocket" in msg for level, msg in messages)

    def test_no_advisories_with_full_ui(self, tmp_path, caplog):
        """A UI with all its companions produces no advisories."""
        config = (builder(tmp_path)
                  .with_firebase_config()
                  .with_emulators(Emulator.EMULATOR_SUITE_UI, Emulator.EMULATOR_HUB, Emulator.LOGGING,
                                  Emulator.CLOUD_FIRESTORE, Emulator.CLOUD_FIRESTORE_WS)
                  .done()
                  .build_config())
        with caplog.at_level(logging.INFO, logger="fbemu.BUILDERS.image_builder"):
            ImageBuilder(config).validate()
        assert not [r for r in caplog.records if r.name == "fbemu.BUILDERS.image_builder"]

    def test_missing_rules_file(self, tmp_path):
        """A rules file that does not exist fails validation."""
        config = (builder(tmp_path)
                  .with_firebase_config().with_firestore_rules(tmp_path / "nope.rules").done()
                  .build_config())
        with pytest.raises(ConfigFileMissingError):
            ImageBuilder(config).build()

    def test_custom_json_unbound_host(self, tmp_path, write_firebase_json, caplog):
        """Emulators bound to loopback in a custom firebase.json are reported."""
        path = write_firebase_json({"emulators": {"firestore": {"host": "127.0.0.1", "port": 8080}}})
        config = builder(tmp_path).read_from_firebase_json(path, base_dir=tmp_path).build_config()
        with caplog.at_level(logging.WARNING):
            ImageBuilder(config).validate()
        assert "'firestore'" in caplog.text

    def test_two_emulators_on_one_fixed_port(self, tmp_path):
        """Two emulators cannot share a fixed port."""
        config = (builder(tmp_path)
                  .with_firebase_config()
                  .with_emulator_on_fixed_port(Emulator.PUB_SUB, 8085)
                  .with_emulator_on_fixed_port(Emulator.CLOUD_STORAGE, 8085)
                  .done()
                  .build_config())
        with pytest.raises(ConfigurationError, match="8085"):
            ImageBuilder(config).build()

    def test_fixed_port_on_another_emulators_default(self, tmp_path):
        """A fixed port cannot take the port a dynamic emulator listens on."""
        config = (builder(tmp_path)
                  .with_project_id("demo")
                  .with_firebase_config()
                  .with_emulator_on_fixed_port(Emulator.AUTHENTICATION, 8080)
                  .with_emulator(Emulator.CLOUD_FIRESTORE)
                  .done()
                  .build_config())
        with pytest.raises(ConfigurationError, match="AUTHENTICATION and CLOUD_FIRESTORE"):
            ImageBuilder(config).validate()


class TestSynthesis:
    """Tests for the produced instructions."""

    def test_scenario_auth_and_firestore(self, tmp_path):
        """Auth and Firestore produce the expected command and downloads."""
        image = build(builder(tmp_path)
                      .with_project_id("demo")
                      .with_firebase_config()
                      .with_emulators(Emulator.AUTHENTICATION, Emulator.CLOUD_FIRESTORE)
                      .done())

        assert image.cmd == ["emulators:start", "--project", "demo"]
        assert image.downloads == ["firestore"]
        assert image.entrypoint == ["/usr/local/bin/firebase"]
        assert image.base_image == "node:23-alpine"

    def test_first_instruction_is_from(self, tmp_path):
        """The configured base image comes first."""
        image = build(builder(tmp_path)
                      .with_docker_config().with_image("node:20-alpine").done()
                      .with_firebase_config().done())
        assert image.dockerfile.instructions[0].raw == "FROM node:20-alpine"

    def test_install_step(self, tmp_path):
        """The install step pins firebase-tools and prepares the directories."""
        image = build(builder(tmp_path).with_firebase_version("13.3.0").with_firebase_config().done())
        install = image.dockerfile.instructions[1]
        assert install.instruction == "RUN"
        assert "npm i -g firebase-tools@13.3.0" in install.raw
        assert "deluser nginx" in install.raw
        assert "mkdir -p /srv/firebase/data/emulator-data" in install.raw
        assert install.raw.endswith("chmod 777 -R /srv/firebase")

    def test_step_order(self, firebase_project):
        """Every step appears in its fixed position."""
        image = build(builder(firebase_project)
                      .with_project_id("demo")
                      .with_token("tok")
                      .with_java_tool_options("-Xmx1g")
                      .with_emulator_data(firebase_project / "data")
                      .with_firebase_config()
                      .with_hosting_path(firebase_project / "public")
                      .with_firestore_rules(firebase_project / "firestore.rules")
                      .with_firestore_indexes(firebase_project / "firestore.indexes.json")
                      .with_storage_rules(firebase_project / "storage.rules")
                      .with_functions(firebase_project / "functions")
                      .with_emulators(Emulator.CLOUD_FIRESTORE, Emulator.CLOUD_STORAGE, Emulator.FIREBASE_HOSTING)
                      .done())

        order = [
            instruction_index(image, "FROM"),
            instruction_index(image, "RUN", "apk"),
            instruction_index(image, "ENV", "FIREBASE_TOKEN"),
            instruction_index(image, "ENV", "JAVA_TOOL_OPTIONS"),
            instruction_index(image, "RUN", "chown"),
            instruction_index(image, "USER"),
            instruction_index(image, "RUN", "firebase setup:emulators"),
            instruction_index(image, "WORKDIR"),
            instruction_index(image, "ADD", "firebase.json"),
            instruction_index(image, "ADD", "firestore.rules"),
            instruction_index(image, "ADD", "firestore.indexes.json"),
            instruction_index(image, "ADD", "storage.rules"),
            instruction_index(image, "ADD", "functions"),
            instruction_index(image, "VOLUME", '["/srv/firebase/data"]'),
            instruction_index(image, "VOLUME", '["/srv/firebase/public"]'),
            instruction_index(image, "ENTRYPOINT"),
            instruction_index(image, "CMD"),
        ]
        assert order == sorted(order)
        assert image.env_vars == {"FIREBASE_TOKEN": "tok", "JAVA_TOOL_OPTIONS": "-Xmx1g"}
        assert image.volumes == ["/srv/firebase/data", "/srv/firebase/public"]
        assert set(image.context_files) == {
            "firebase.json", "firestore.rules", "firestore.indexes.json", "storage.rules", "functions",
        }

    def test_downloads_in_declaration_order(self, tmp_path):
        """Emulators are downloaded in enum order, not registration order."""
        image = build(builder(tmp_path)
                      .with_firebase_config()
                      .with_emulators(Emulator.PUB_SUB, Emulator.CLOUD_STORAGE, Emulator.EMULATOR_SUITE_UI,
                                      Emulator.CLOUD_FIRESTORE, Emulator.REALTIME_DATABASE)
                      .done())
        assert image.downloads == ["ui", "database", "firestore", "storage", "pubsub"]
        assert image.dockerfile.find("RUN")[-1].raw == (
            "RUN firebase setup:emulators:ui && firebase setup:emulators:database && "
            "firebase setup:emulators:firestore && firebase setup:emulators:storage && "
            "firebase setup:emulators:pubsub"
        )

    def test_no_download_step_without_downloadable_emulators(self, tmp_path):
        """The download step is omitted when nothing needs downloading."""
        image = build(builder(tmp_path)
                      .with_firebase_config().with_emulator(Emulator.EMULATOR_HUB).done())
        assert image.downloads == []
        assert not [i for i in image.dockerfile.find("RUN") if "setup:emulators" in i.raw]

    def test_import_export_use_subdirectory(self, tmp_path):
        """Import and export point below the mounted data volume."""
        image = build(builder(tmp_path)
                      .with_emulator_data(tmp_path / "data")
                      .with_firebase_config().done())
        assert image.cmd == [
            "emulators:start",
            "--import", "/srv/firebase/data/emulator-data",
            "--export-on-exit", "/srv/firebase/data/emulator-data",
        ]
        assert "/srv/firebase/data" not in image.cmd

    def test_generated_firebase_json(self, tmp_path):
        """The in-code configuration is written into the image as firebase.json."""
        image = build(builder(tmp_path)
                      .with_firebase_config().with_emulator_on_fixed_port(Emulator.PUB_SUB, 8090).done())
        content = json.loads(image.context_files["firebase.json"].content)
        assert content["emulators"]["pubsub"] == {"host": "0.0.0.0", "port": 8090}
        assert image.dockerfile.find("ADD")[0].raw == "ADD firebase.json /srv/firebase/firebase.json"

    def test_env_values_are_not_expanded(self, tmp_path):
        """Dollar signs in ENV values reach the emulators literally."""
        image = build(builder(tmp_path)
                      .with_java_tool_options("-Duser.home=$HOME -Dname=café")
                      .with_firebase_config().done())
        env = image.dockerfile.find("ENV")[0]
        assert env.raw == 'ENV JAVA_TOOL_OPTIONS="-Duser.home=\\$HOME -Dname=café"'
        assert image.env_vars["JAVA_TOOL_OPTIONS"] == "-Duser.home=$HOME -Dname=café"

    def test_custom_firebase_json_is_copied(self, tmp_path, write_firebase_json):
        """A firebase.json read from disk is copied unchanged."""
        path = write_firebase_json({"emulators": {"hub": {"host": "0.0.0.0", "port": 4400}}})
        image = build(builder(tmp_path).read_from_firebase_json(path, base_dir=tmp_path))
        assert image.context_files["firebase.json"].source == path
        assert image.context_files["firebase.json"].content is None


class TestIdentity:
    """Tests for the user and group step."""

    def identity(self, tmp_path, **ids):
        docker = builder(tmp_path).with_docker_config()
        if "uid" in ids:
            docker.with_user_id(ids["uid"])
        if "gid" in ids:
            docker.with_group_id(ids["gid"])
        image = build(docker.done().with_firebase_config().done())
        run = [i for i in image.dockerfile.find("RUN") if "chown" in i.raw][0]
        return run.raw, image.user

    def test_defaults(self, tmp_path):
        """Without ids the emulators run as the node user."""
        run, user = self.identity(tmp_path)
        assert run == "RUN chown 1000:1000 -R /srv/firebase"
        assert user == "1000:1000"

    def test_user_and_group(self, tmp_path):
        """Both ids create a runner group and user."""
        run, user = self.identity(tmp_path, uid=1001, gid=1002)
        assert run == ("RUN addgroup -g 1002 runner && "
                       "adduser -u 1001 -G runner -D -h /srv/firebase runner && "
                       "chown 1001:1002 -R /srv/firebase")
        assert user == "1001:1002"

    def test_user_only_joins_node_group(self, tmp_path):
        """A user id alone joins the default node group."""
        run, user = self.identity(tmp_path, uid=1001)
        assert "addgroup" not in run
        assert "adduser -u 1001 -G node" in run
        assert user == "1001:1000"

    def test_group_only(self, tmp_path):
        """A group id alone creates only the group."""
        run, user = self.identity(tmp_path, gid=1002)
        assert run == "RUN addgroup -g 1002 runner && chown 1000:1002 -R /srv/firebase"
        assert user == "1000:1002"


class TestFingerprint:
    """Tests for the image tag."""

    def test_same_config_same_tag(self, tmp_path):
        """Identical configurations reuse the same image."""
        def make():
            return build(builder(tmp_path).with_firebase_config().with_emulator(Emulator.PUB_SUB).done())
        assert make().tag == make().tag

    def test_different_config_different_tag(self, tmp_path):
        """Different configurations get different images."""
        a = build(builder(tmp_path).with_firebase_config().with_emulator(Emulator.PUB_SUB).done())
        b = build(builder(tmp_path).with_firebase_config().with_emulator(Emulator.CLOUD_STORAGE).done())
        assert a.tag != b.tag
        assert a.tag.startswith("localhost/fbemu/firebase:")
