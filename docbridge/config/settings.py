"""Configuration management for docbridge."""

import os
from pathlib import Path
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv
import yaml


class ServerConfig(BaseModel):
    """Document store connection configuration."""
    uri: str = Field(default="memory://localhost/docbridge")
    backend: Optional[str] = Field(default=None)
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        """Validate backend name."""
        if v is None:
            return v
        valid_backends = ["memory", "mongodb", "arangodb"]
        if v.lower() not in valid_backends:
            raise ValueError(f"Backend must be one of {valid_backends}")
        return v.lower()


class DocumentSetConfig(BaseModel):
    """Bulk insert buffering configuration."""
    buffer_size: int = Field(default=100, ge=1)


class AppConfig(BaseModel):
    """Application configuration."""
    log_level: str = Field(default="INFO")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class Settings(BaseModel):
    """Main configuration class."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    document_set: DocumentSetConfig = Field(default_factory=DocumentSetConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    @classmethod
    def load_config(cls, config_overrides: Optional[Dict[str, Any]] = None) -> "Settings":
        """
        Load configuration from multiple sources with proper precedence:
        1. Command-line arguments (highest priority)
        2. YAML configuration file
        3. Environment variables
        4. .env file values
        5. Default values (lowest priority)
        """
        # Load .env file first (lowest priority)
        load_dotenv()

        config_data = {}

        # Apply .env and environment variables
        config_data = cls._merge_config(config_data, cls._load_env_config())

        # Apply YAML config
        yaml_config = cls._load_yaml_config()
        if yaml_config:
            config_data = cls._merge_config(config_data, yaml_config)

        # Apply command-line overrides (highest priority)
        if config_overrides:
            config_data = cls._merge_config(config_data, config_overrides)

        return cls(**config_data)

    @classmethod
    def _load_yaml_config(cls) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file."""
        config_paths = [
            Path("./docbridge.yaml"),
            Path("./config.yaml"),
            Path.home() / ".docbridge.yaml"
        ]

        for config_path in config_paths:
            if config_path.exists():
                try:
                    with open(config_path, 'r') as f:
                        return yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Error parsing YAML config file {config_path}: {e}")
                except OSError as e:
                    raise ValueError(f"Error reading config file {config_path}: {e}")

        return None

    @classmethod
    def _load_env_config(cls) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config = {}

        # Server configuration
        server_config = {}
        if os.getenv("DOCBRIDGE_URI"):
            server_config["uri"] = os.getenv("DOCBRIDGE_URI")
        if os.getenv("DOCBRIDGE_BACKEND"):
            server_config["backend"] = os.getenv("DOCBRIDGE_BACKEND")
        if os.getenv("DOCBRIDGE_USERNAME"):
            server_config["username"] = os.getenv("DOCBRIDGE_USERNAME")
        if os.getenv("DOCBRIDGE_PASSWORD"):
            server_config["password"] = os.getenv("DOCBRIDGE_PASSWORD")
        if server_config:
            config["server"] = server_config

        # Document set configuration
        if os.getenv("DOCBRIDGE_BUFFER_SIZE"):
            config["document_set"] = {"buffer_size": os.getenv("DOCBRIDGE_BUFFER_SIZE")}

        # App configuration
        if os.getenv("LOG_LEVEL"):
            config["app"] = {"log_level": os.getenv("LOG_LEVEL")}

        return config

    @classmethod
    def _merge_config(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._merge_config(result[key], value)
            else:
                result[key] = value

        return result


def get_settings(config_overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """Get application settings with optional overrides."""
    return Settings.load_config(config_overrides)
