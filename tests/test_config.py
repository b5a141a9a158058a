from pathlib import Path

import pytest

from things_bridge.config import ConfigError, load_config

THINGS_KEYS = (
    "THINGS_AUTH_TOKEN",
    "THINGS_HOME",
    "THINGS_SQLITE_BINARY",
    "THINGS_QUERY_TIMEOUT",
    "THINGS_VERIFY_WAIT_MS",
    "THINGS_REQUIRE_MACOS",
    "THINGS_SERVICE_TOKEN",
    "THINGS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in THINGS_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_load_config_defaults():
    config = load_config()

    assert config.auth_token is None
    assert config.home is None
    assert config.sqlite_binary == "sqlite3"
    assert config.query_timeout == 30.0
    assert config.verify_wait_ms == 100
    assert config.require_macos is True
    assert config.service_token is None
    assert config.log_level == "INFO"


def test_load_config_reads_env(monkeypatch, tmp_path):
    monkeypatch.setenv("THINGS_AUTH_TOKEN", "abc")
    monkeypatch.setenv("THINGS_HOME", str(tmp_path))
    monkeypatch.setenv("THINGS_QUERY_TIMEOUT", "2.5")
    monkeypatch.setenv("THINGS_VERIFY_WAIT_MS", "250")
    monkeypatch.setenv("THINGS_REQUIRE_MACOS", "off")
    monkeypatch.setenv("THINGS_LOG_LEVEL", "debug")

    config = load_config()

    assert config.auth_token == "abc"
    assert config.home == tmp_path.resolve()
    assert config.query_timeout == 2.5
    assert config.verify_wait_ms == 250
    assert config.require_macos is False
    assert config.log_level == "DEBUG"


def test_load_config_reads_dotenv(tmp_path):
    (tmp_path / ".env").write_text(
        "# Things bridge\n"
        'export THINGS_AUTH_TOKEN="from-dotenv"\n'
        "THINGS_SERVICE_TOKEN='svc'\n"
        "THINGS_SQLITE_BINARY=/opt/bin/sqlite3\n",
        encoding="utf-8",
    )

    config = load_config()

    assert config.auth_token == "from-dotenv"
    assert config.service_token == "svc"
    assert config.sqlite_binary == "/opt/bin/sqlite3"


def test_load_config_prefers_env_over_dotenv(monkeypatch, tmp_path):
    (tmp_path / ".env").write_text("THINGS_AUTH_TOKEN=dotenv\n", encoding="utf-8")
    monkeypatch.setenv("THINGS_AUTH_TOKEN", "env")

    assert load_config().auth_token == "env"


def test_blank_values_count_as_unset(monkeypatch):
    monkeypatch.setenv("THINGS_AUTH_TOKEN", "   ")

    assert load_config().auth_token is None


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("THINGS_REQUIRE_MACOS", "maybe"),
        ("THINGS_QUERY_TIMEOUT", "soon"),
        ("THINGS_VERIFY_WAIT_MS", "-1"),
        ("THINGS_LOG_LEVEL", "LOUD"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError) as excinfo:
        load_config()

    assert key in str(excinfo.value)


def test_home_expands_user(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("THINGS_HOME", "~/sandbox")

    assert load_config().home == Path(tmp_path / "sandbox").resolve()
