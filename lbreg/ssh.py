from __future__ import annotations

import io
import socket

import paramiko

from .errors import KeyFileError, TransportError
from .models import CommandResult, RemoteEndpoint

KEY_TYPES: tuple[type[paramiko.PKey], ...] = (
    paramiko.RSAKey,
    paramiko.ECDSAKey,
    paramiko.Ed25519Key,
)


def load_private_key(material: str) -> paramiko.PKey:
    """Parse private key material, trying each supported key type in turn."""
    last: Exception | None = None
    for key_cls in KEY_TYPES:
        try:
            return key_cls.from_private_key(io.StringIO(material))
        except (paramiko.SSHException, ValueError) as e:
            last = e
    raise KeyFileError(f"Unsupported or invalid private key: {last}")


class SSHSession:
    """One SSH connection used for a single script run."""

    def __init__(self, client: paramiko.SSHClient, timeout_s: float) -> None:
        self.client = client
        self.timeout_s = timeout_s

    def exec(self, script: str) -> CommandResult:
        try:
            _stdin, stdout, stderr = self.client.exec_command(script, timeout=self.timeout_s)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"SSH command failed: {type(e).__name__}: {e}") from e
        return CommandResult(exit_status=status, stdout=out, stderr=err)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> SSHSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def connect(endpoint: RemoteEndpoint, timeout_s: float = 30.0) -> SSHSession:
    """Open an SSH session to `endpoint` using its private key."""
    pkey = load_private_key(endpoint.key)
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        client.connect(
            hostname=endpoint.host,
            port=endpoint.port,
            username=endpoint.user,
            pkey=pkey,
            timeout=timeout_s,
            banner_timeout=timeout_s,
            auth_timeout=timeout_s,
            allow_agent=False,
            look_for_keys=False,
        )
    except socket.gaierror as e:
        client.close()
        raise TransportError(f"Unknown host '{endpoint.host}': {e}") from e
    except (paramiko.SSHException, OSError) as e:
        client.close()
        raise TransportError(
            f"Cannot connect to {endpoint.user}@{endpoint.host}:{endpoint.port}: {type(e).__name__}: {e}"
        ) from e
    return SSHSession(client, timeout_s)
