"""Upstream pool file editing.

A pool file (`<host>.hosts.conf`) holds one nginx upstream block:

    upstream example_servers {
        server 10.0.0.1:80;
        server 10.0.0.2:80;
    }

`compute_update` is the local, side-effect free statement of the edit.
`lbreg.script` expresses the very same rules as a remote shell script, so
both must change together.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

from .models import BackendTarget

BLOCK_PREFIX = "upstream "
CLOSING = "}"

SERVER_RE = re.compile(r"^\s*server\s+([^\s;]+)")


@dataclass(frozen=True)
class PoolUpdate:
    content: str
    changed: bool


def hosts_file_name(host: str) -> str:
    return f"{host}.hosts.conf"


def pool_name(host: str) -> str:
    return f"{host}_servers"


def block_header(host: str) -> str:
    return f"upstream {pool_name(host)} {{"


def server_line(token: str) -> str:
    return f"    server {token};"


def render_pool(host: str, tokens: list[str]) -> str:
    """Render a fresh pool block. No trailing newline, same as the remote `printf`."""
    lines = [block_header(host)] + [server_line(t) for t in tokens] + [CLOSING]
    return "\n".join(lines)


def parse_servers(content: str) -> list[str]:
    """Return the `addr:port` tokens of all `server` lines, in file order."""
    out: list[str] = []
    for line in content.split("\n"):
        m = SERVER_RE.match(line)
        if m:
            out.append(m.group(1))
    return out


def block_start(content: str, host: str) -> str:
    """Prefix of the line opening the block to edit.

    The host's own block wins; otherwise the first upstream block is used, so
    files written with another pool name still get the entry.
    """
    header = block_header(host)
    for line in content.split("\n"):
        if line.startswith(header):
            return header
    return BLOCK_PREFIX


def compute_update(existing: str | None, host: str, address: str, port: int) -> PoolUpdate:
    """Compute the new pool file contents for registering `address:port`.

    Matching is a case-sensitive substring test on the literal `addr:port`
    token, so `10.0.0.1:80` is considered present when `10.0.0.11:80` is.
    Only the first block opened by `block_start` is edited.
    """
    target = BackendTarget(address, port)
    if existing is None:
        return PoolUpdate(render_pool(host, [target.token]), True)
    if target.token in existing:
        return PoolUpdate(existing, False)

    # Mirrors the sed range `/^<start>/,/^}/`: the closing line is searched
    # from the line after the opening one.
    start = block_start(existing, host)
    out: list[str] = []
    in_block = False
    inserted = False
    for line in existing.split("\n"):
        if not inserted:
            if in_block and line.startswith(CLOSING):
                out.append(server_line(target.token))
                inserted = True
            elif not in_block and line.startswith(start):
                in_block = True
        out.append(line)

    if not inserted:
        # malformed: no block or no closing brace
        return PoolUpdate(existing, False)
    return PoolUpdate("\n".join(out), True)
