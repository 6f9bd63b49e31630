import pytest

from blemgr.core import config
from blemgr.core.config import Settings, load_settings, settings_from_mapping
from blemgr.core.errors import ConfigError


def test_missing_file_gives_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.yaml")
    assert settings == Settings()
    assert settings.connect_max_attempts == 6
    assert settings.connect_interval_s == 0.5


def test_full_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "adapter: hci1\n"
        "desired_services:\n"
        "  - 180d\n"
        "  - fe95\n"
        "connect:\n"
        "  max_attempts: 10\n"
        "  interval_s: 1\n"
        "scan:\n"
        "  duration_s: 5.5\n"
        "  pump_ms: 200\n"
        "  sleep_ms: 50\n"
        "notify:\n"
        "  pump_ms: 20\n"
        "bus:\n"
        "  call_timeout_s: 3\n"
        "log:\n"
        "  level: DEBUG\n"
    )
    settings = load_settings(path)
    assert settings.adapter == "hci1"
    assert settings.desired_services == ["180d", "fe95"]
    assert settings.connect_max_attempts == 10
    assert settings.connect_interval_s == 1
    assert settings.scan_duration_s == 5.5
    assert settings.scan_pump_ms == 200
    assert settings.scan_sleep_ms == 50
    assert settings.notify_pump_ms == 20
    assert settings.call_timeout_s == 3
    assert settings.log_level == "DEBUG"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_settings(path) == Settings()


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text("adapter: hci2\n")
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(path))
    assert load_settings().adapter == "hci2"


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "connect: 3\n",
        "connect:\n  max_attempts: many\n",
        "connect:\n  max_attempts: true\n",
        "connect:\n  max_attempts: 0\n",
        "desired_services: 180d\n",
        "desired_services:\n  - 1\n",
        "adapter: [hci0\n",
    ],
)
def test_bad_files_raise_config_error(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    with pytest.raises(ConfigError):
        load_settings(path)


def test_unknown_keys_are_ignored():
    assert settings_from_mapping({"colour": "blue", "scan": {"speed": 3}}) == Settings()


def test_with_overrides_skips_none():
    base = Settings(adapter="hci0")
    assert base.with_overrides(adapter=None).adapter == "hci0"
    assert base.with_overrides(adapter="hci1", log_level="DEBUG").log_level == "DEBUG"
