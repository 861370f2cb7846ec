"""Settings resolution: defaults, YAML file, environment overrides."""

import logging

import pytest
import yaml

from wallet_ledger.config import LedgerSettings, load_settings, load_yaml_file


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings(env={})
        assert settings == LedgerSettings()
        assert settings.database_url == "sqlite:///ledger.db"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("database_path: /data/home.db\ndefault_currency: GBP\nlog_level: info\n")
        settings = load_settings(path, env={})
        assert settings.database_path == "/data/home.db"
        assert settings.default_currency == "GBP"
        assert settings.log_level_value == logging.INFO

    def test_config_path_from_environment(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("default_currency: JPY\n")
        settings = load_settings(env={"WALLET_LEDGER_CONFIG": str(path)})
        assert settings.default_currency == "JPY"

    def test_environment_overrides_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("database_path: file.db\n")
        settings = load_settings(
            path,
            env={
                "WALLET_LEDGER_DB": "env.db",
                "WALLET_LEDGER_CURRENCY": "usd",
                "WALLET_LEDGER_LOG_LEVEL": "DEBUG",
            },
        )
        assert settings.database_path == "env.db"
        assert settings.default_currency == "USD"
        assert settings.log_level == "DEBUG"

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ValueError, match="Unknown settings: colour"):
            load_settings(path, env={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", env={})

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("database_path: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_settings(path, env={})

    def test_unknown_log_level_falls_back(self):
        assert LedgerSettings(log_level="chatty").log_level_value == logging.WARNING


class TestLoadYamlFile:
    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_yaml_file(path)
