"""Unit tests for shunt.config."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from shunt.config import get_grace_period, get_shutdown_policy, load_config, parse_config
from shunt.errors import ConfigError
from shunt.models import ShutdownPolicy, ShuntConfig, TtyPolicy


def _write_config(directory: Path, data, name: str = "shunt.json") -> Path:
    path = directory / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_shorthand_and_full_forms(self, tmp_path):
        path = _write_config(
            tmp_path,
            {
                "commands": {
                    "web": ["npm", "run", "dev"],
                    "api": {
                        "argv": ["cargo", "run"],
                        "workdir": "api",
                        "tty": "never",
                        "env": {"RUST_LOG": "debug", "HOME": None},
                    },
                }
            },
        )

        config = load_config(path)

        web, api = config.commands
        assert web.name == "web"
        assert web.argv == ["npm", "run", "dev"]
        assert web.tty is TtyPolicy.AUTO
        assert api.workdir == Path("api")
        assert api.tty is TtyPolicy.NEVER
        assert api.env == {"RUST_LOG": "debug", "HOME": None}

    def test_config_dir_is_parent_of_config_file(self, tmp_path, monkeypatch):
        sub = tmp_path / "project"
        sub.mkdir()
        path = _write_config(sub, {"commands": {"a": ["true"]}})
        monkeypatch.chdir(tmp_path)

        config = load_config(Path("project") / "shunt.json")

        assert config.config_dir == path.parent.resolve()
        assert config.config_dir.is_absolute()

    def test_command_order_follows_file(self, tmp_path):
        path = tmp_path / "shunt.json"
        path.write_text('{"commands": {"zeta": ["true"], "alpha": ["true"], "mid": ["true"]}}')

        config = load_config(path)

        assert [command.name for command in config.commands] == ["zeta", "alpha", "mid"]

    def test_settings_are_read(self, tmp_path):
        path = _write_config(
            tmp_path,
            {"shutdown": "fail-fast", "grace_period": 2, "commands": {"a": ["true"]}},
        )

        config = load_config(path)

        assert config.shutdown is ShutdownPolicy.FAIL_FAST
        assert config.grace_period == 2.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="could not open config"):
            load_config(tmp_path / "missing.json")

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "shunt.yaml"
        path.write_text("commands: {}")
        with pytest.raises(ConfigError, match="unknown file extension"):
            load_config(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "shunt.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="could not parse JSON"):
            load_config(path)

    def test_duplicate_command_names_rejected(self, tmp_path):
        path = tmp_path / "shunt.json"
        path.write_text('{"commands": {"a": ["true"], "a": ["false"]}}')
        with pytest.raises(ConfigError, match="duplicate key"):
            load_config(path)

    def test_json5_comments_and_trailing_commas(self, tmp_path):
        path = tmp_path / "shunt.json5"
        path.write_text(
            "// dev servers\n"
            "{\n"
            "  commands: {\n"
            "    web: ['npm', 'start',],  /* shorthand */\n"
            "    api: { argv: [\"cargo\", \"run\"], workdir: \"api\", },\n"
            "  },\n"
            "}\n"
        )

        config = load_config(path)

        assert [command.name for command in config.commands] == ["web", "api"]
        assert config.commands[0].argv == ["npm", "start"]
        assert config.commands[1].workdir == Path("api")

    def test_invalid_json5(self, tmp_path):
        path = tmp_path / "shunt.json5"
        path.write_text("{commands: {a: [\"true\"]")
        with pytest.raises(ConfigError, match="could not parse JSON5"):
            load_config(path)

    def test_duplicate_keys_rejected_in_json5(self, tmp_path):
        path = tmp_path / "shunt.json5"
        path.write_text("{commands: {a: [\"true\"], a: [\"false\"]}}")
        with pytest.raises(ConfigError, match="duplicate key"):
            load_config(path)


class TestParseConfig:
    def test_top_level_must_be_object(self, tmp_path):
        with pytest.raises(ConfigError, match="JSON object"):
            parse_config([], tmp_path)

    def test_commands_must_be_object(self, tmp_path):
        with pytest.raises(ConfigError, match='"commands"'):
            parse_config({"commands": [["true"]]}, tmp_path)

    def test_command_must_be_list_or_object(self, tmp_path):
        with pytest.raises(ConfigError, match="argument list or an object"):
            parse_config({"commands": {"a": "echo hi"}}, tmp_path)

    def test_empty_argv_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid config"):
            parse_config({"commands": {"a": []}}, tmp_path)

    def test_non_string_argv_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid config"):
            parse_config({"commands": {"a": ["sleep", 1]}}, tmp_path)

    def test_unknown_command_key_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid config"):
            parse_config({"commands": {"a": {"argv": ["true"], "cwd": "x"}}}, tmp_path)

    def test_unknown_top_level_key_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid config"):
            parse_config({"commands": {}, "colour": True}, tmp_path)

    def test_name_key_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="comes from its key"):
            parse_config({"commands": {"a": {"argv": ["true"], "name": "b"}}}, tmp_path)

    def test_bad_tty_policy_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid config"):
            parse_config({"commands": {"a": {"argv": ["true"], "tty": "sometimes"}}}, tmp_path)


def _config(tmp_path, **settings) -> ShuntConfig:
    return ShuntConfig(commands=[], config_dir=tmp_path, **settings)


class TestShutdownPolicy:
    @patch.dict("os.environ", {}, clear=True)
    def test_default_is_continue(self, tmp_path):
        assert get_shutdown_policy(_config(tmp_path)) is ShutdownPolicy.CONTINUE

    @patch.dict("os.environ", {"SHUNT_SHUTDOWN": "cascade"}, clear=True)
    def test_env_used_when_config_silent(self, tmp_path):
        assert get_shutdown_policy(_config(tmp_path)) is ShutdownPolicy.CASCADE

    @patch.dict("os.environ", {"SHUNT_SHUTDOWN": "cascade"}, clear=True)
    def test_config_beats_env(self, tmp_path):
        config = _config(tmp_path, shutdown=ShutdownPolicy.FAIL_FAST)
        assert get_shutdown_policy(config) is ShutdownPolicy.FAIL_FAST

    def test_override_beats_config(self, tmp_path):
        config = _config(tmp_path, shutdown=ShutdownPolicy.FAIL_FAST)
        assert get_shutdown_policy(config, "cascade") is ShutdownPolicy.CASCADE

    @patch.dict("os.environ", {"SHUNT_SHUTDOWN": "sometimes"}, clear=True)
    def test_invalid_env_value(self, tmp_path):
        with pytest.raises(ConfigError, match="invalid shutdown policy"):
            get_shutdown_policy(_config(tmp_path))


class TestGracePeriod:
    @patch.dict("os.environ", {}, clear=True)
    def test_default(self, tmp_path):
        assert get_grace_period(_config(tmp_path)) == 5.0

    @patch.dict("os.environ", {"SHUNT_GRACE_PERIOD": "0.5"}, clear=True)
    def test_env(self, tmp_path):
        assert get_grace_period(_config(tmp_path)) == 0.5

    @patch.dict("os.environ", {"SHUNT_GRACE_PERIOD": "0.5"}, clear=True)
    def test_config_beats_env(self, tmp_path):
        assert get_grace_period(_config(tmp_path, grace_period=3)) == 3.0

    def test_override(self, tmp_path):
        assert get_grace_period(_config(tmp_path, grace_period=3), 1.5) == 1.5

    def test_non_positive_override_rejected(self, tmp_path):
        with pytest.raises(ConfigError, match="positive"):
            get_grace_period(_config(tmp_path), 0)

    @patch.dict("os.environ", {"SHUNT_GRACE_PERIOD": "soon"}, clear=True)
    def test_invalid_env_value(self, tmp_path):
        with pytest.raises(ConfigError, match="must be a number"):
            get_grace_period(_config(tmp_path))
