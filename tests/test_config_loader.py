"""Tests for settings loading and validation."""

import os

import pytest

from moneyminder.config_loader import DEFAULTS, load_config, load_settings


def write_settings(config_dir, text):
    config_dir.mkdir(exist_ok=True)
    (config_dir / "settings.yaml").write_text(text, encoding="utf-8")
    return config_dir


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_empty_file(self, tmp_path):
        write_settings(tmp_path, "")
        assert load_settings(str(tmp_path)) == {}

    def test_not_a_mapping(self, tmp_path):
        write_settings(tmp_path, "- a\n- b\n")
        with pytest.raises(ValueError):
            load_settings(str(tmp_path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path))

    def test_alternate_file_name(self, tmp_path):
        (tmp_path / "other.yaml").write_text("currency: USD\n", encoding="utf-8")
        assert load_settings(str(tmp_path), "other.yaml") == {"currency": "USD"}


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "")
        config = load_config(str(config_dir))
        for key in ('currency', 'default_category', 'merchant_pick', 'seed_default_rules',
                    'duplicate_window_seconds'):
            assert config[key] == DEFAULTS[key]
        assert config['_warnings'] == []
        assert config['_messages_file'] is None
        assert config['_config_dir'] == os.path.abspath(str(config_dir))

    def test_rules_db_relative_to_config_dir(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "rules_db: data/my.db\n")
        config = load_config(str(config_dir))
        assert config['_rules_db'] == os.path.join(os.path.abspath(str(config_dir)), "data/my.db")

    def test_currency_upper_cased(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "currency: ' usd '\n")
        assert load_config(str(config_dir))['currency'] == "USD"

    def test_invalid_merchant_pick(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "merchant_pick: middle\n")
        config = load_config(str(config_dir))
        assert config['merchant_pick'] == 'last'
        assert len(config['_warnings']) == 1
        assert "merchant_pick" in config['_warnings'][0]['message']

    @pytest.mark.parametrize("value", ["-5", "soon", "true"])
    def test_invalid_duplicate_window(self, tmp_path, value):
        config_dir = write_settings(tmp_path / "config", f"duplicate_window_seconds: {value}\n")
        config = load_config(str(config_dir))
        assert config['duplicate_window_seconds'] == 60
        assert len(config['_warnings']) == 1

    def test_zero_window_allowed(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "duplicate_window_seconds: 0\n")
        config = load_config(str(config_dir))
        assert config['duplicate_window_seconds'] == 0
        assert config['_warnings'] == []

    def test_invalid_seed_flag(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "seed_default_rules: maybe\n")
        config = load_config(str(config_dir))
        assert config['seed_default_rules'] is True
        assert len(config['_warnings']) == 1

    def test_messages_file_found(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "messages_file: messages.csv\n")
        (config_dir / "messages.csv").write_text("body\n", encoding="utf-8")
        config = load_config(str(config_dir))
        assert config['_messages_file'] == os.path.join(os.path.abspath(str(config_dir)), "messages.csv")

    def test_messages_file_missing(self, tmp_path):
        config_dir = write_settings(tmp_path / "config", "messages_file: messages.csv\n")
        config = load_config(str(config_dir))
        assert config['_messages_file'] is None
        assert "Messages file not found" in config['_warnings'][0]['message']

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope"))
