import pytest
from pydantic import ValidationError

from tailwatch.models.schemas import StartPosition
from tailwatch.utils.config import Settings, load_settings


def test_defaults(log_root, clean_env, monkeypatch):
    monkeypatch.setenv("ROOT_DIR", str(log_root))

    settings = Settings()

    assert settings.root_dir == log_root
    assert settings.polling_interval_ms == 500
    assert settings.polling_interval == 0.5
    assert settings.start_position is StartPosition.START
    assert settings.database == "trades_db"
    assert settings.collection == "trades"
    assert settings.mongodb_uri is None


def test_missing_root_dir_is_rejected(log_root, clean_env):
    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.parametrize("value", ["", "   "])
def test_empty_root_dir_is_rejected(log_root, clean_env, monkeypatch, value):
    monkeypatch.setenv("ROOT_DIR", value)

    with pytest.raises(ValidationError):
        Settings()


def test_empty_root_override_is_rejected(log_root, clean_env):
    with pytest.raises(ValidationError):
        load_settings(root_dir="")


@pytest.mark.parametrize("value", ["0", "-5", "soon"])
def test_invalid_polling_interval_is_rejected(log_root, clean_env, monkeypatch, value):
    monkeypatch.setenv("ROOT_DIR", str(log_root))
    monkeypatch.setenv("POLLING_INTERVAL_MS", value)

    with pytest.raises(ValidationError):
        Settings()


def test_environment_values(log_root, clean_env, monkeypatch):
    monkeypatch.setenv("ROOT_DIR", str(log_root))
    monkeypatch.setenv("POLLING_INTERVAL_MS", "250")
    monkeypatch.setenv("START_POSITION", "end")
    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")

    settings = Settings()

    assert settings.polling_interval == 0.25
    assert settings.start_position is StartPosition.END
    assert settings.mongodb_uri == "mongodb://localhost:27017"


def test_env_file_is_read(log_root, clean_env):
    (log_root.parent / ".env").write_text(f"ROOT_DIR={log_root}\nPOLLING_INTERVAL_MS=750\n")

    settings = Settings()

    assert settings.root_dir == log_root
    assert settings.polling_interval_ms == 750


def test_overrides_take_precedence_and_none_is_ignored(log_root, clean_env, monkeypatch):
    monkeypatch.setenv("ROOT_DIR", "/somewhere/else")
    monkeypatch.setenv("POLLING_INTERVAL_MS", "100")

    settings = load_settings(root_dir=str(log_root), polling_interval_ms=None)

    assert settings.root_dir == log_root
    assert settings.polling_interval_ms == 100


def test_resolved_root_is_absolute(log_root, clean_env):
    settings = load_settings(root_dir="logs")

    assert settings.resolved_root() == log_root.resolve()
