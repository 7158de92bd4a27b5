"""Load Balancer Registrar (lbreg).

Registers backend servers into an nginx upstream pool over SSH:
 - computes the new `<host>.hosts.conf` contents (pure, see `pool`)
 - expresses the same edit as one remote shell script (see `script`)
 - runs it over a single SSH session and signals nginx to reload

The implementation is intentionally small so it can be audited and explained.
"""
from __future__ import annotations

from .errors import KeyFileError, LoadBalancerError, RemoteCommandError, TransportError
from .nginx import Nginx
from .pool import PoolUpdate, compute_update

__all__ = [
    "KeyFileError",
    "LoadBalancerError",
    "Nginx",
    "PoolUpdate",
    "RemoteCommandError",
    "TransportError",
    "compute_update",
]
