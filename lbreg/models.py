from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BackendTarget:
    address: str
    port: int

    @property
    def token(self) -> str:
        """Literal `addr:port` text used both for matching and for the server line."""
        return f"{self.address}:{int(self.port)}"


@dataclass(frozen=True)
class RemoteEndpoint:
    host: str
    port: int
    user: str
    key: str  # private key material, not a path
    directory: str

    def __repr__(self) -> str:
        # keep key material out of logs and tracebacks
        return (
            f"RemoteEndpoint(host={self.host!r}, port={self.port}, user={self.user!r}, "
            f"directory={self.directory!r})"
        )


@dataclass(frozen=True)
class CommandResult:
    exit_status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0
