import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from errors import ConfigError

PROTOCOLS = ("http", "https")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
FALSE_VALUES = ("0", "false", "no", "off")


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in FALSE_VALUES


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for the file drop server, built once at startup."""
    working_dir: Path
    protocol: str = "http"
    port: int = 8000
    host: str = "0.0.0.0"
    open_browser: bool = True
    per_file_qr: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        if self.protocol not in PROTOCOLS:
            raise ConfigError(f"protocol must be one of {', '.join(PROTOCOLS)}, got {self.protocol!r}")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")
        wd = Path(self.working_dir)
        if not wd.is_dir():
            raise ConfigError(f"working directory does not exist: {wd}")
        if not os.access(wd, os.R_OK | os.W_OK | os.X_OK):
            raise ConfigError(f"working directory is not readable and writable: {wd}")
        object.__setattr__(self, "working_dir", wd.resolve())

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Read the configuration from environment variables.
        Keys: working_dir, protocol, PORT, HOST, OPEN_BROWSER, PER_FILE_QR, LOG_LEVEL.
        """
        env = os.environ if environ is None else environ

        port_str = env.get("PORT", "8000").strip()
        try:
            port = int(port_str)
        except ValueError:
            raise ConfigError(f"PORT must be a valid number, got {port_str!r}")

        return cls(
            working_dir=Path(env.get("working_dir") or Path.cwd()),
            protocol=env.get("protocol", "http").strip().lower(),
            port=port,
            host=env.get("HOST", "0.0.0.0").strip() or "0.0.0.0",
            open_browser=_flag(env.get("OPEN_BROWSER"), True),
            per_file_qr=_flag(env.get("PER_FILE_QR"), False),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
