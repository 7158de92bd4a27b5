from __future__ import annotations


class LoadBalancerError(RuntimeError):
    """Operational failure of a load balancer update.

    Callers that only care about "applied" vs "failed" catch this one type;
    `kind` tells the variants apart for diagnostics.
    """

    kind = "operational"


class TransportError(LoadBalancerError):
    kind = "transport"


class KeyFileError(LoadBalancerError):
    kind = "key"


class RemoteCommandError(LoadBalancerError):
    kind = "remote"

    def __init__(self, exit_status: int, stderr: str = "") -> None:
        detail = stderr.strip()
        msg = f"Remote script exited with status {exit_status}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.exit_status = exit_status
        self.stderr = stderr
