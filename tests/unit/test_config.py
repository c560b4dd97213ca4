"""
Unit tests for server configuration.
"""

import pytest

from resourceful import ServerConfig, __version__
from resourceful.http import media_types


class TestServerConfig:
    """Tests for ServerConfig defaults and validation."""

    def test_defaults(self):
        """Test the default values."""
        config = ServerConfig()

        assert config.port == 8080
        assert config.default_content_type == media_types.JSON
        assert config.xml_root_tag == "response"
        assert config.strict_accept is False
        assert config.server_name == f"resourceful/{__version__}"
        config.validate()

    def test_port_zero_allowed(self):
        """Test that port 0 (OS-assigned) passes validation."""
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"log_format": "xml"},
        {"default_content_type": "json"},
        {"default_content_type": "*/*"},
        {"default_content_type": "text/*"},
    ])
    def test_invalid(self, overrides):
        """Test that bad values are rejected."""
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_timeout_none(self):
        """Test that no timeout at all is allowed."""
        ServerConfig(timeout=None).validate()


class TestFromEnv:
    """Tests for ServerConfig.from_env()."""

    def test_defaults_without_env(self, monkeypatch):
        """Test from_env() with nothing set."""
        for name in ("HOST", "PORT", "WORKERS", "TIMEOUT", "LOG_LEVEL", "CONTENT_TYPE"):
            monkeypatch.delenv(f"RESOURCEFUL_{name}", raising=False)

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.max_workers == 16

    def test_reads_env(self, monkeypatch):
        """Test that environment variables are picked up."""
        monkeypatch.setenv("RESOURCEFUL_HOST", "0.0.0.0")
        monkeypatch.setenv("RESOURCEFUL_PORT", "3000")
        monkeypatch.setenv("RESOURCEFUL_WORKERS", "2")
        monkeypatch.setenv("RESOURCEFUL_TIMEOUT", "7.5")
        monkeypatch.setenv("RESOURCEFUL_LOG_LEVEL", "debug")
        monkeypatch.setenv("RESOURCEFUL_CONTENT_TYPE", "application/xml")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout == 7.5
        assert config.log_level == "DEBUG"
        assert config.default_content_type == media_types.XML
        config.validate()
