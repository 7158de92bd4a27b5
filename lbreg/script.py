"""Remote shell script for registering a backend.

The edit happens on the load balancer machine, which we only reach through a
shell, so `pool.compute_update` is restated here as shell logic:

    if the pool file exists:
        if the `addr:port` token is present -> nothing to do
        else -> sed-insert a server line before the block's closing `}`
    else:
        write a fresh block with a single server line
    exec pkill -HUP the proxy so it re-reads its configuration

Every branch echoes an `lbreg:<outcome>` marker so the caller can tell what
happened. All steps are joined with `;` and run in one remote invocation.
"""
from __future__ import annotations

import re
import shlex

from .models import BackendTarget
from .pool import BLOCK_PREFIX, CLOSING, block_header, hosts_file_name, render_pool, server_line

MARKER_PREFIX = "lbreg:"

CREATED = "created"
ADDED = "added"
PRESENT = "present"
MALFORMED = "malformed"
UNKNOWN = "unknown"

OUTCOMES = (CREATED, ADDED, PRESENT, MALFORMED)

_BRE_SPECIAL = re.compile(r"([\\.\[*^$])")
_SED_REPL_SPECIAL = re.compile(r"([\\&/])")


def _bre(text: str) -> str:
    return _BRE_SPECIAL.sub(r"\\\1", text)


def _sed_addr(text: str) -> str:
    return _bre(text).replace("/", r"\/")


def _marker(outcome: str) -> str:
    return f"echo {MARKER_PREFIX}{outcome}"


def sed_insert_program(start: str, token: str) -> str:
    """sed program inserting a server line before the first `}` line after `start`.

    Only the first matching block is edited: after the substitution the
    `:a;n;ba` loop copies the rest of the file through untouched. Relies on
    GNU sed for `\\n` in the replacement and `;` after labels.
    """
    repl = _SED_REPL_SPECIAL.sub(r"\\\1", server_line(token))
    return (
        "/^" + _sed_addr(start) + "/,/^" + CLOSING + "/{"
        "/^" + CLOSING + "/{"
        "s/^" + CLOSING + "/" + repl + "\\n" + CLOSING + "/;"
        ":a;n;ba;"
        "};}"
    )


def create_command(host: str, target: BackendTarget) -> str:
    fname = shlex.quote(hosts_file_name(host))
    lines = render_pool(host, [target.token]).split("\n")
    fmt = "\\n".join(["%s"] * len(lines))
    args = " ".join(shlex.quote(line) for line in lines)
    return f"printf {shlex.quote(fmt)} {args} > {fname}"


def pool_update_script(host: str, target: BackendTarget) -> str:
    fname = shlex.quote(hosts_file_name(host))
    backup = shlex.quote(hosts_file_name(host) + ".bak")
    token = shlex.quote(target.token)
    header_re = shlex.quote("^" + _bre(block_header(host)))
    named = shlex.quote(sed_insert_program(block_header(host), target.token))
    fallback = shlex.quote(sed_insert_program(BLOCK_PREFIX, target.token))
    steps = [
        f"if [ -f {fname} ]",
        f"then if grep -qF -- {token} {fname}",
        f"then {_marker(PRESENT)}",
        f"else if grep -q -- {header_re} {fname}",
        f"then sed -i.bak {named} {fname}",
        f"else sed -i.bak {fallback} {fname}",
        "fi",
        f"rm -f {backup}",
        f"if grep -qF -- {token} {fname}",
        f"then {_marker(ADDED)}",
        f"else {_marker(MALFORMED)}",
        "fi",
        "fi",
        f"else {create_command(host, target)}",
        _marker(CREATED),
        "fi",
    ]
    return "; ".join(steps)


def reload_command(binary: str) -> str:
    """Last step of the script: SIGHUP every process whose command line matches `binary`.

    The shell running the script carries the whole script (directory, host,
    binary) on its command line, so it must not be alive when pkill scans:
    `exec` replaces the shell with pkill, and pkill never signals itself.
    """
    return f"exec pkill -HUP -f {shlex.quote(binary)}"


def build_script(directory: str, host: str, target: BackendTarget, binary: str) -> str:
    return "; ".join(
        [
            "set -e",
            f"cd {shlex.quote(directory)}",
            pool_update_script(host, target),
            reload_command(binary),
        ]
    )


def parse_outcome(stdout: str) -> str:
    outcome = UNKNOWN
    for line in stdout.splitlines():
        line = line.strip()
        if line.startswith(MARKER_PREFIX):
            value = line[len(MARKER_PREFIX):]
            if value in OUTCOMES:
                outcome = value
    return outcome
