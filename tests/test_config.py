"""Tests for tracker configuration resolution."""

import json
import logging

import pytest

from event_tracker.config import TrackerConfig, resolve_config
from event_tracker.errors import ConfigurationError


FULL = {
    "client_key": "key",
    "client_secret": "secret",
    "endpoint": "https://collector.example/v1",
    "client_name": "mweb",
}


class TestDefaults:
    def test_uses_defaults_if_not_passed_in(self):
        config = resolve_config(FULL)
        assert config.buffer_timeout_ms == 100
        assert config.buffer_length == 40
        assert config.append_client_context is False

    def test_overrides_defaults_if_passed_in(self):
        config = resolve_config({**FULL, "buffer_timeout_ms": 10, "buffer_length": 5})
        assert config.buffer_timeout_ms == 10
        assert config.buffer_length == 5

    def test_camel_case_options(self):
        config = resolve_config({
            "clientKey": "key",
            "clientSecret": "secret",
            "endpoint": "https://collector.example/v1",
            "clientName": "mweb",
            "bufferTimeoutMs": 0,
            "bufferLength": 3,
            "appendClientContext": True,
            "debugMode": False,
        })
        assert config.client_key == "key"
        assert config.buffer_timeout_ms == 0
        assert config.buffer_length == 3
        assert config.append_client_context is True
        assert config.debug_mode is False

    def test_legacy_buffer_timeout_alias(self):
        assert resolve_config({"bufferTimeout": 25}).buffer_timeout_ms == 25

    def test_append_client_context_follows_provider(self):
        assert resolve_config(FULL, has_context_provider=True).append_client_context is True
        config = resolve_config({**FULL, "append_client_context": False}, has_context_provider=True)
        assert config.append_client_context is False

    def test_config_is_immutable(self):
        config = resolve_config(FULL)
        with pytest.raises(AttributeError):
            config.buffer_length = 1


class TestDebugMode:
    def test_debug_by_default(self):
        assert resolve_config(FULL).debug_mode is True

    def test_explicit_production(self):
        assert resolve_config({**FULL, "debug_mode": False}).debug_mode is False

    def test_production_environment_signal(self):
        config = resolve_config(FULL, {"EVENT_TRACKER_ENV": "production"})
        assert config.debug_mode is False

    def test_debug_env_variable(self):
        env = {"EVENT_TRACKER_ENV": "production", "EVENT_TRACKER_DEBUG": "true"}
        assert resolve_config(FULL, env).debug_mode is True

    @pytest.mark.parametrize("missing", ["client_key", "client_secret", "endpoint", "client_name"])
    def test_missing_credentials_force_debug(self, missing, caplog):
        options = {**FULL, "debug_mode": False}
        del options[missing]

        with caplog.at_level(logging.WARNING, logger="event_tracker.config"):
            config = resolve_config(options)

        assert config.debug_mode is True
        assert config.missing_fields == (missing,)
        assert missing in caplog.text


class TestEnvironment:
    def test_environment_fills_missing_options(self):
        env = {
            "EVENT_TRACKER_CLIENT_KEY": "env-key",
            "EVENT_TRACKER_CLIENT_SECRET": "env-secret",
            "EVENT_TRACKER_ENDPOINT": "https://env.example/v1",
            "EVENT_TRACKER_CLIENT_NAME": "envapp",
            "EVENT_TRACKER_BUFFER_LENGTH": "7",
            "EVENT_TRACKER_BUFFER_TIMEOUT_MS": "0",
            "EVENT_TRACKER_APPEND_CLIENT_CONTEXT": "yes",
        }
        config = resolve_config({}, env)
        assert config.client_key == "env-key"
        assert config.endpoint == "https://env.example/v1"
        assert config.buffer_length == 7
        assert config.buffer_timeout_ms == 0
        assert config.append_client_context is True
        assert config.missing_fields == ()

    def test_explicit_options_win(self):
        config = resolve_config({"client_key": "explicit"}, {"EVENT_TRACKER_CLIENT_KEY": "env"})
        assert config.client_key == "explicit"

    def test_pure(self):
        env = {"EVENT_TRACKER_BUFFER_LENGTH": "9"}
        assert resolve_config(FULL, env) == resolve_config(FULL, env)
        # No snapshot, no environment
        assert resolve_config(FULL).buffer_length == 40


class TestValidation:
    @pytest.mark.parametrize("name", ["client-name", "my app", "naïve", "a.b"])
    def test_invalid_client_name(self, name):
        with pytest.raises(ConfigurationError, match="letters or numbers"):
            resolve_config({**FULL, "client_name": name})

    def test_negative_timeout(self):
        with pytest.raises(ConfigurationError, match="buffer_timeout_ms"):
            resolve_config({**FULL, "buffer_timeout_ms": -1})

    def test_zero_length(self):
        with pytest.raises(ConfigurationError, match="buffer_length"):
            resolve_config({**FULL, "buffer_length": 0})

    def test_non_integer_length(self):
        with pytest.raises(ConfigurationError):
            resolve_config({**FULL, "buffer_length": "lots"})
        with pytest.raises(ConfigurationError):
            resolve_config({**FULL, "buffer_length": True})

    def test_unknown_option(self):
        with pytest.raises(ConfigurationError, match="Unknown tracker option"):
            resolve_config({**FULL, "bufferSize": 3})

    def test_trailing_newline_in_client_name(self):
        with pytest.raises(ConfigurationError, match="letters or numbers"):
            resolve_config({**FULL, "client_name": "mweb\n"})

    def test_numeric_credentials_become_strings(self):
        config = resolve_config({**FULL, "client_key": 12345, "client_secret": 67890, "debug_mode": False})
        assert config.client_key == "12345"
        assert config.client_secret == "67890"
        assert not config.debug_mode

    def test_numeric_secret_from_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text(
            "clientKey: key\n"
            "clientSecret: 67890\n"
            "endpoint: https://collector.example/v1\n"
            "clientName: mweb\n"
        )
        assert TrackerConfig.from_yaml(str(path), environ={}).client_secret == "67890"

    @pytest.mark.parametrize("value", [["key"], {"k": "v"}, True])
    def test_non_string_credentials_rejected(self, value):
        with pytest.raises(ConfigurationError, match="client_secret must be a string"):
            resolve_config({**FULL, "client_secret": value})


class TestDirectConstruction:
    def test_missing_credentials_force_debug(self, caplog):
        with caplog.at_level(logging.WARNING, logger="event_tracker.config"):
            config = TrackerConfig(client_name="app", debug_mode=False)

        assert config.debug_mode is True
        assert "client_secret" in caplog.text

    def test_complete_credentials_keep_production(self):
        config = TrackerConfig(**FULL, debug_mode=False)
        assert config.debug_mode is False

    def test_invalid_client_name(self):
        with pytest.raises(ConfigurationError, match="letters or numbers"):
            TrackerConfig(client_name="bad name!")

    @pytest.mark.parametrize(
        "field, value",
        [("buffer_timeout_ms", -1), ("buffer_length", 0), ("buffer_length", "40")],
    )
    def test_invalid_buffer_settings(self, field, value):
        with pytest.raises(ConfigurationError, match=field):
            TrackerConfig(**FULL, **{field: value})


class TestConfigFiles:
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text(
            "clientKey: key\n"
            "clientSecret: secret\n"
            "endpoint: https://collector.example/v1\n"
            "clientName: mweb\n"
            "bufferLength: 3\n"
            "debugMode: false\n"
        )
        config = TrackerConfig.from_yaml(str(path), environ={})
        assert config.buffer_length == 3
        assert config.debug_mode is False

    def test_from_json(self, tmp_path):
        path = tmp_path / "tracker.json"
        path.write_text(json.dumps({**FULL, "buffer_timeout_ms": 0}))
        config = TrackerConfig.from_json(str(path), environ={})
        assert config.client_name == "mweb"
        assert config.buffer_timeout_ms == 0

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "tracker.yaml"
        path.write_text("")
        config = TrackerConfig.from_yaml(str(path), environ={})
        assert config.debug_mode is True

    def test_to_dict_masks_secret(self):
        assert resolve_config(FULL).to_dict()["client_secret"] == "***"
