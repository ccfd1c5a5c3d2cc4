"""
Tests for deployment and page configuration.
"""

import pytest

from config import AppSettings, DEFAULT_COLOR, DynamicConfigSettings, load_config, parse_config

BASE = {
    "service": "colorteller",
    "image": "gcr.io/demo/colorteller",
    "dynamic_config": {"server_key": "secret-abc"},
}


class TestParseConfig:
    def test_defaults_applied(self):
        config = parse_config(BASE)
        dyn = config.dynamic_config
        assert config.service == "colorteller"
        assert dyn.name == "colorteller-cloudrun"
        assert dyn.field_name == "envVars"
        assert dyn.environment == "production"
        assert dyn.timeout == 3.0
        assert dyn.default == [{"name": "COLOR", "value": "blue"}]

    @pytest.mark.parametrize("key", ["service", "image", "dynamic_config"])
    def test_missing_required_key(self, key):
        data = {k: v for k, v in BASE.items() if k != key}
        with pytest.raises(ValueError, match=key):
            parse_config(data)

    def test_missing_server_key(self):
        with pytest.raises(ValueError, match="server_key"):
            parse_config({**BASE, "dynamic_config": {}})

    def test_env_prefix_resolved(self):
        data = {**BASE, "dynamic_config": {"server_key": "env:STATSIG_SERVER_KEY"}}
        config = parse_config(data, environ={"STATSIG_SERVER_KEY": "secret-from-env"})
        assert config.dynamic_config.server_key == "secret-from-env"

    def test_overrides(self):
        data = {
            **BASE,
            "dynamic_config": {
                "server_key": "k",
                "name": "other",
                "field": "vars",
                "timeout": "1.5",
                "default": [{"name": "COLOR", "value": "green"}],
            },
        }
        dyn = parse_config(data).dynamic_config
        assert dyn.name == "other"
        assert dyn.field_name == "vars"
        assert dyn.timeout == 1.5
        assert dyn.default == [{"name": "COLOR", "value": "green"}]

    def test_load_config_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "service: colorteller\n"
            "image: gcr.io/demo/colorteller\n"
            "dynamic_config:\n"
            "  server_key: secret-abc\n"
        )
        assert load_config(str(path)).image == "gcr.io/demo/colorteller"

    def test_settings_defaults_are_independent(self):
        first = DynamicConfigSettings(server_key="a")
        second = DynamicConfigSettings(server_key="b")
        first.default.append({"name": "SIZE", "value": "large"})
        assert second.default == [{"name": "COLOR", "value": "blue"}]
        assert first.field_name == "envVars"

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError):
            parse_config(None)


class TestAppSettings:
    def test_defaults(self):
        settings = AppSettings.from_env({})
        assert settings.port == 8080
        assert settings.color == DEFAULT_COLOR
        assert settings.metadata_timeout_ms == 500

    def test_empty_color_falls_back(self):
        assert AppSettings.from_env({"COLOR": ""}).color == DEFAULT_COLOR

    def test_values_from_env(self):
        settings = AppSettings.from_env({"PORT": "9000", "COLOR": "#ff0000", "METADATA_TIMEOUT_MS": "200"})
        assert settings.port == 9000
        assert settings.color == "#ff0000"
        assert settings.metadata_timeout_ms == 200
