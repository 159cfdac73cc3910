"""Tests for settings and the config store."""

import json

import pytest

from ftpupdater.config import Config, Settings
from ftpupdater.exceptions import ConfigError


@pytest.fixture
def valid_settings():
    return Settings(
        server_url="ftp://ftp.example.com:2121/www",
        remote_path="site",
        local_path="/srv/site",
        username="user",
        password="pässword",
    )


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("FTPUPDATER_PASSWORD", raising=False)
    monkeypatch.delenv("FTPUPDATER_CONFIG_DIR", raising=False)


class TestSettings:
    """Tests for Settings."""

    def test_url_parts(self, valid_settings):
        assert valid_settings.host == "ftp.example.com"
        assert valid_settings.port == 2121
        assert valid_settings.server_root == "/www"

    def test_default_port(self):
        assert Settings(server_url="ftp://ftp.example.com").port == 21

    def test_validate_ok(self, valid_settings):
        valid_settings.validate()

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"server_url": ""}, "Server URL not configured"),
            ({"server_url": "http://example.com"}, "ftp:// scheme"),
            ({"server_url": "ftp:///www"}, "no host"),
            ({"local_path": ""}, "Local path not configured"),
            ({"interval": 0.0}, "Interval"),
            ({"exclude": "["}, "Invalid exclude pattern"),
        ],
    )
    def test_validate_errors(self, valid_settings, overrides, message):
        with pytest.raises(ConfigError, match=message):
            valid_settings.with_overrides(**overrides).validate()

    def test_with_overrides_ignores_none(self, valid_settings):
        updated = valid_settings.with_overrides(remote_path=None, exclude=r"\.bak$")

        assert updated.remote_path == "site"
        assert updated.exclude == r"\.bak$"
        assert valid_settings.exclude == ""

    def test_password_is_base64_encoded(self, valid_settings):
        data = valid_settings.to_dict()

        assert data["password"] != "pässword"
        assert Settings.from_dict(data).password == "pässword"

    def test_invalid_password_encoding(self):
        with pytest.raises(ConfigError):
            Settings.from_dict({"password": "abc"})


class TestConfig:
    """Tests for Config."""

    def test_defaults_when_missing(self, temp_dir):
        store = Config(temp_dir)

        assert not store.is_configured()
        assert store.load_settings() == Settings()

    def test_save_and_load(self, temp_dir, valid_settings):
        store = Config(temp_dir / "nested")

        path = store.save_settings(valid_settings)

        assert path == temp_dir / "nested" / "config.json"
        assert path.stat().st_mode & 0o777 == 0o600
        assert store.load_settings() == valid_settings

    def test_password_env_override(self, temp_dir, valid_settings, monkeypatch):
        store = Config(temp_dir)
        store.save_settings(valid_settings)
        monkeypatch.setenv("FTPUPDATER_PASSWORD", "from-env")

        assert store.load_settings().password == "from-env"

    def test_corrupt_file(self, temp_dir):
        (temp_dir / "config.json").write_text("{broken")

        with pytest.raises(ConfigError):
            Config(temp_dir).load_settings()

    def test_non_object_file(self, temp_dir):
        (temp_dir / "config.json").write_text(json.dumps(["a", "b"]))

        with pytest.raises(ConfigError):
            Config(temp_dir).load_settings()

    def test_config_dir_from_environment(self, temp_dir, monkeypatch):
        monkeypatch.setenv("FTPUPDATER_CONFIG_DIR", str(temp_dir))

        assert Config().get_config_path() == temp_dir / "config.json"
