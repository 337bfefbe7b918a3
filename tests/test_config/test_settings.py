"""Test configuration settings."""

import os
import tempfile
from pathlib import Path
import pytest
from pydantic import ValidationError
from unittest.mock import patch

from docbridge.config.settings import Settings, get_settings


ENV_VARS = [
    "DOCBRIDGE_URI",
    "DOCBRIDGE_BACKEND",
    "DOCBRIDGE_USERNAME",
    "DOCBRIDGE_PASSWORD",
    "DOCBRIDGE_BUFFER_SIZE",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove docbridge variables from the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    with patch("docbridge.config.settings.load_dotenv"):
        yield monkeypatch


def test_default_settings():
    """Test default settings initialization."""
    settings = Settings()

    assert settings.server.uri == "memory://localhost/docbridge"
    assert settings.server.backend is None
    assert settings.server.username is None
    assert settings.document_set.buffer_size == 100
    assert settings.app.log_level == "INFO"


def test_env_settings(clean_env):
    """Test settings from environment variables (when no YAML config exists)."""
    clean_env.setenv("DOCBRIDGE_URI", "mongodb://envhost:27017/db")
    clean_env.setenv("DOCBRIDGE_BACKEND", "MongoDB")
    clean_env.setenv("DOCBRIDGE_BUFFER_SIZE", "250")
    clean_env.setenv("LOG_LEVEL", "debug")

    with patch.object(Settings, '_load_yaml_config', return_value=None):
        settings = Settings.load_config()

    assert settings.server.uri == "mongodb://envhost:27017/db"
    assert settings.server.backend == "mongodb"
    assert settings.document_set.buffer_size == 250
    assert settings.app.log_level == "DEBUG"


def test_yaml_settings(clean_env):
    """Test settings from YAML file."""
    yaml_content = """
server:
  uri: arangodb://yamlhost:8529/catalog
document_set:
  buffer_size: 10
app:
  log_level: WARNING
"""
    original_path = Path.cwd()
    with tempfile.TemporaryDirectory() as temp_dir:
        try:
            os.chdir(temp_dir)
            with open(Path(temp_dir) / "docbridge.yaml", "w") as f:
                f.write(yaml_content)

            settings = Settings.load_config()

            assert settings.server.uri == "arangodb://yamlhost:8529/catalog"
            assert settings.document_set.buffer_size == 10
            assert settings.app.log_level == "WARNING"
        finally:
            os.chdir(original_path)


def test_yaml_overrides_env(clean_env):
    """Test that YAML values take precedence over environment variables."""
    clean_env.setenv("DOCBRIDGE_URI", "mongodb://envhost")
    clean_env.setenv("DOCBRIDGE_USERNAME", "envuser")

    yaml_config = {"server": {"uri": "mongodb://yamlhost"}}
    with patch.object(Settings, '_load_yaml_config', return_value=yaml_config):
        settings = Settings.load_config()

    assert settings.server.uri == "mongodb://yamlhost"
    assert settings.server.username == "envuser"


def test_invalid_yaml(clean_env):
    """Test that malformed YAML raises ValueError."""
    original_path = Path.cwd()
    with tempfile.TemporaryDirectory() as temp_dir:
        try:
            os.chdir(temp_dir)
            with open(Path(temp_dir) / "docbridge.yaml", "w") as f:
                f.write("server: [unclosed")

            with pytest.raises(ValueError, match="Error parsing YAML"):
                Settings.load_config()
        finally:
            os.chdir(original_path)


def test_config_overrides(clean_env):
    """Test command-line overrides."""
    with patch.object(Settings, '_load_yaml_config', return_value=None):
        settings = get_settings({
            "server": {"uri": "memory://override"},
            "app": {"log_level": "ERROR"}
        })

    assert settings.server.uri == "memory://override"
    assert settings.app.log_level == "ERROR"


def test_invalid_log_level():
    """Test invalid log level validation."""
    with pytest.raises(ValidationError):
        Settings(app={"log_level": "INVALID"})


def test_invalid_backend():
    """Test invalid backend validation."""
    with pytest.raises(ValidationError):
        Settings(server={"backend": "cassandra"})


def test_invalid_buffer_size():
    """Test buffer size lower bound."""
    with pytest.raises(ValidationError):
        Settings(document_set={"buffer_size": 0})


def test_merge_config():
    """Test recursive configuration merge."""
    base = {"server": {"uri": "a", "username": "u"}, "app": {"log_level": "INFO"}}
    override = {"server": {"uri": "b"}}

    result = Settings._merge_config(base, override)

    assert result == {"server": {"uri": "b", "username": "u"}, "app": {"log_level": "INFO"}}
    assert base["server"]["uri"] == "a"
