from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from cookiesync.config import (
    ConfigurationError,
    SyncConfig,
    configure_logging,
    env_bool,
    env_float,
    get_database_config,
    get_policy_path,
    get_storage_config,
    get_sync_config,
)
from cookiesync.config.storage import DEFAULT_DB_FILENAME, DEFAULT_POLICY_FILENAME


def test_env_float_uses_default_for_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLOAT", "   ")

    assert env_float("EXAMPLE_FLOAT", 1.5) == 1.5


def test_env_float_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLOAT", "soon")

    with pytest.raises(ConfigurationError) as exc:
        env_float("EXAMPLE_FLOAT", 1.0)

    assert "EXAMPLE_FLOAT" in str(exc.value)


@pytest.mark.parametrize(("raw", "expected"), [("yes", True), ("0", False), ("OFF", False)])
def test_env_bool_parses_flags(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool  # noqa: FBT001
) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_bool("EXAMPLE_FLAG", default=not expected) is expected


def test_env_bool_rejects_unknown_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")

    with pytest.raises(ConfigurationError):
        env_bool("EXAMPLE_FLAG", default=True)


def test_sync_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COOKIESYNC_STORAGE_KEY", "rules")
    monkeypatch.setenv("COOKIESYNC_POLL_SECONDS", "0.5")
    monkeypatch.setenv("COOKIESYNC_SERIALIZE", "false")

    config = get_sync_config()

    assert config == SyncConfig(storage_key="rules", poll_seconds=0.5, serialize_operations=False)


def test_sync_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("COOKIESYNC_STORAGE_KEY", "COOKIESYNC_POLL_SECONDS", "COOKIESYNC_SERIALIZE"):
        monkeypatch.delenv(name, raising=False)

    config = get_sync_config()

    assert config.storage_key == "cookieSettings"
    assert config.serialize_operations is True


def test_sync_config_rejects_non_positive_poll_interval() -> None:
    with pytest.raises(ConfigurationError):
        SyncConfig(poll_seconds=0)


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("COOKIESYNC_DATA_DIR", str(custom))

    assert get_storage_config().resolve_data_dir() == custom.resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")

    assert get_database_config().uri == "sqlite:///override.db"


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("COOKIESYNC_DATA_DIR", str(tmp_path / "data-dir"))

    uri = get_database_config().uri

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_policy_path_defaults_to_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("COOKIESYNC_POLICY_FILE", raising=False)
    monkeypatch.setenv("COOKIESYNC_DATA_DIR", str(tmp_path))

    assert get_policy_path() == tmp_path.resolve() / DEFAULT_POLICY_FILENAME


def test_configure_logging_rejects_unknown_level_names() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(level="chatty", force=True)
