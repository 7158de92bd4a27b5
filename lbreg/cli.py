from __future__ import annotations

import argparse
import json
import sys

import requests

from .errors import LoadBalancerError
from .nginx import Nginx
from .pool import compute_update
from .settings import Settings

EXIT_UNCHANGED = 3


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _add_target_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", required=True, help="Public host name (pool file prefix)")
    p.add_argument("--server", required=True, help="Backend address")
    p.add_argument("--server-port", type=int, required=True)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="lbreg", description="Register backends in nginx upstream pools")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_prev = sub.add_parser("preview", help="Show the pool file after registering a backend (no I/O on the balancer)")
    _add_target_args(s_prev)
    s_prev.add_argument("--file", help="Current pool file; omit when it does not exist yet")

    s_apply = sub.add_parser("apply", help="Register a backend directly over SSH (LBREG_* settings)")
    _add_target_args(s_apply)
    s_apply.add_argument("--host-port", type=int, default=80)

    s_reg = sub.add_parser("register", help="Register a backend through the API")
    _add_target_args(s_reg)
    s_reg.add_argument("--host-port", type=int, default=80)

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd == "preview":
        existing = None
        if args.file:
            try:
                with open(args.file, encoding="utf-8") as fh:
                    existing = fh.read()
            except FileNotFoundError:
                existing = None
        upd = compute_update(existing, args.host, args.server, args.server_port)
        sys.stdout.write(upd.content)
        if not upd.content.endswith("\n"):
            sys.stdout.write("\n")
        return 0 if upd.changed else EXIT_UNCHANGED

    if args.cmd == "apply":
        try:
            balancer = Nginx.from_settings(Settings.from_env())
            outcome = balancer.update(args.host, args.host_port, args.server, args.server_port)
        except LoadBalancerError as e:
            _print({"ok": False, "kind": e.kind, "error": str(e)})
            return 1
        _print({"ok": True, "host": args.host, "server": f"{args.server}:{args.server_port}", "outcome": outcome})
        return 0

    base = args.api.rstrip("/")

    if args.cmd == "register":
        payload = {
            "host_port": args.host_port,
            "server": args.server,
            "server_port": args.server_port,
        }
        r = requests.post(f"{base}/pools/{args.host}/servers", json=payload, timeout=60)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "events":
        _print(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
