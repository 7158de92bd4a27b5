from __future__ import annotations

from typing import Any, Callable

from . import db
from .errors import LoadBalancerError, RemoteCommandError
from .models import BackendTarget, RemoteEndpoint
from .script import MALFORMED, UNKNOWN, build_script, parse_outcome
from .settings import Settings
from .ssh import connect

Connector = Callable[[RemoteEndpoint, float], Any]


class Nginx:
    """nginx load balancer reached over SSH.

    Each host has a `<host>.hosts.conf` file in the remote directory holding
    its upstream block, included from nginx.conf by the operator:

        upstream example_servers {
            server 10.0.0.1:80;
            server 10.0.0.2:80;
        }

    `update` adds a backend to that block (creating the file if needed) and
    sends SIGHUP to nginx. Two concurrent updates for the same host are not
    coordinated and may interleave on the remote side.
    """

    def __init__(
        self,
        endpoint: RemoteEndpoint,
        binary: str = "nginx",
        timeout_s: float = 30.0,
        db_path: str | None = None,
        connector: Connector = connect,
        create_tables: bool = True,
    ) -> None:
        if not binary:
            raise ValueError("Proxy binary name must not be empty.")
        self.endpoint = endpoint
        self.binary = binary
        self.timeout_s = timeout_s
        self.db_path = db_path
        self._connect = connector
        if db_path and create_tables:
            db.init_db(db_path)

    @classmethod
    def from_settings(cls, settings: Settings, connector: Connector = connect, create_tables: bool = True) -> Nginx:
        return cls(
            settings.endpoint(),
            binary=settings.binary,
            timeout_s=float(settings.ssh_timeout_s),
            db_path=settings.events_db,
            connector=connector,
            create_tables=create_tables,
        )

    def update(self, host: str, host_port: int, server: str, server_port: int) -> str:
        """Register `server:server_port` in the pool of `host` and reload nginx.

        `host_port` is accepted for interface compatibility and not used.
        Returns the outcome reported by the remote script (created, added,
        present or malformed). Raises LoadBalancerError on any failure.
        """
        target = BackendTarget(server, server_port)
        script = build_script(self.endpoint.directory, host, target, self.binary)
        try:
            with self._connect(self.endpoint, self.timeout_s) as session:
                result = session.exec(script)
            if not result.ok:
                raise RemoteCommandError(result.exit_status, result.stderr)
        except LoadBalancerError as e:
            self._log("ERROR", f"Update failed ({e.kind}): {e}", host, target.token)
            raise

        outcome = parse_outcome(result.stdout)
        if outcome == MALFORMED:
            self._log("WARN", "No upstream block with a closing brace found, entry not added; nginx reloaded", host, target.token)
        elif outcome == UNKNOWN:
            self._log("WARN", "Remote script reported no outcome; nginx reloaded", host, target.token)
        else:
            self._log("INFO", f"Backend {outcome}; nginx reloaded", host, target.token)
        if self.db_path:
            db.record_registration(self.db_path, host, target.token, outcome)
        return outcome

    def _log(self, level: str, message: str, host: str, backend: str) -> None:
        if self.db_path:
            db.log_event(self.db_path, level, message, host=host, backend=backend)
