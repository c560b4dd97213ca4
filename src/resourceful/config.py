"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m resourceful --port 3000                          │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── RESOURCEFUL_PORT=3000 python -m resourceful                │
    │                                                                     │
    │   3. Defaults below                                                 │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from . import __version__
from .http import media_types


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for HTTPServer.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size, timeout

    HTTP
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING
    - min_workers, max_workers, queue_size

    REPRESENTATIONS
    - default_content_type, xml_root_tag, strict_accept

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # -------------------------------------------------------------------------
    # NETWORK
    # -------------------------------------------------------------------------

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Connections the kernel queues before accept()."""

    buffer_size: int = 8192
    """Bytes read per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds (None blocks forever)."""

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    keep_alive: bool = True
    """Serve several requests per connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request accepted; bigger ones get a 413."""

    # -------------------------------------------------------------------------
    # THREADING
    # -------------------------------------------------------------------------

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Ceiling the pool may scale up to under load."""

    queue_size: int = 100
    """Connections waiting for a worker; beyond this clients get a 503."""

    # -------------------------------------------------------------------------
    # REPRESENTATIONS
    # -------------------------------------------------------------------------

    default_content_type: str = media_types.JSON
    """
    Representation used when the client doesn't state a preference, or
    states one no resource can meet (unless strict_accept is set).
    """

    xml_root_tag: str = "response"
    """Tag XML bodies are wrapped in."""

    strict_accept: bool = False
    """Answer 406 instead of falling back when Accept can't be met."""

    # -------------------------------------------------------------------------
    # LOGGING
    # -------------------------------------------------------------------------

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" for people, "json" for log shippers."""

    server_name: str = f"resourceful/{__version__}"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        RESOURCEFUL_HOST          Bind address (default: 127.0.0.1)
        RESOURCEFUL_PORT          Port (default: 8080)
        RESOURCEFUL_WORKERS       Max worker threads (default: 16)
        RESOURCEFUL_TIMEOUT       Socket timeout in seconds (default: 30)
        RESOURCEFUL_LOG_LEVEL     Logging level (default: INFO)
        RESOURCEFUL_CONTENT_TYPE  Default representation (default: application/json)

        =====================================================================
        """
        max_workers = int(os.getenv("RESOURCEFUL_WORKERS", "16"))
        return cls(
            host=os.getenv("RESOURCEFUL_HOST", "127.0.0.1"),
            port=int(os.getenv("RESOURCEFUL_PORT", "8080")),
            min_workers=min(cls.min_workers, max_workers),
            max_workers=max_workers,
            timeout=float(os.getenv("RESOURCEFUL_TIMEOUT", "30")),
            log_level=os.getenv("RESOURCEFUL_LOG_LEVEL", "INFO").upper(),
            default_content_type=os.getenv("RESOURCEFUL_CONTENT_TYPE", media_types.JSON),
        )

    def validate(self) -> None:
        """
        Check the values, failing fast at startup.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")

        essence, _ = media_types.parse_media_type(self.default_content_type)
        type_, _, subtype = essence.partition("/")
        if not type_ or not subtype or "*" in essence:
            raise ValueError(
                f"default_content_type must be a type/subtype: {self.default_content_type!r}"
            )
