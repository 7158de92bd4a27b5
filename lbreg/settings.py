from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import KeyFileError
from .models import RemoteEndpoint


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # SSH endpoint of the load balancer machine
    ssh_host: str = "localhost"
    ssh_port: int = 22
    ssh_user: str = "root"
    ssh_key_file: str = "~/.ssh/id_rsa"
    ssh_timeout_s: int = 30

    # Where the *.hosts.conf files live and which process to signal
    directory: str = "/etc/nginx/conf.d"
    binary: str = "nginx"

    # Event log
    db_path: str = "lbreg.db"
    enable_events: bool = True

    # HTTP Basic auth for the API; disabled unless both are set
    api_user: str | None = None
    api_password: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= int(self.ssh_port) <= 65535:
            raise ValueError(f"Invalid SSH port: {self.ssh_port}")
        if not self.binary:
            raise ValueError("Proxy binary name must not be empty.")

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            ssh_host=os.getenv("LBREG_SSH_HOST", cls.ssh_host),
            ssh_port=_env_int("LBREG_SSH_PORT", cls.ssh_port),
            ssh_user=os.getenv("LBREG_SSH_USER", cls.ssh_user),
            ssh_key_file=os.getenv("LBREG_SSH_KEY_FILE", cls.ssh_key_file),
            ssh_timeout_s=_env_int("LBREG_SSH_TIMEOUT_S", cls.ssh_timeout_s),
            directory=os.getenv("LBREG_DIRECTORY", cls.directory),
            binary=os.getenv("LBREG_BINARY", cls.binary),
            db_path=os.getenv("LBREG_DB_PATH", cls.db_path),
            enable_events=_env_bool("LBREG_ENABLE_EVENTS", cls.enable_events),
            api_user=os.getenv("LBREG_API_USER") or None,
            api_password=os.getenv("LBREG_API_PASSWORD") or None,
        )

    @property
    def events_db(self) -> str | None:
        return self.db_path if self.enable_events else None

    @property
    def api_auth_enabled(self) -> bool:
        return bool(self.api_user and self.api_password)

    def endpoint(self) -> RemoteEndpoint:
        """Build the SSH endpoint, reading the private key from disk.

        The key is read on every call so a rotated key file is picked up
        without restarting the process.
        """
        path = os.path.expanduser(self.ssh_key_file)
        try:
            with open(path, encoding="utf-8") as fh:
                key = fh.read()
        except OSError as e:
            raise KeyFileError(f"Cannot read SSH key file '{path}': {e}") from e
        return RemoteEndpoint(
            host=self.ssh_host,
            port=int(self.ssh_port),
            user=self.ssh_user,
            key=key,
            directory=self.directory,
        )
