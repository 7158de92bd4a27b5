from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable


def utc_now() -> str:
    return datetime.utcnow().strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path(path: str) -> str:
    """Return a file path usable by sqlite; a directory path gets `lbreg.db` inside it."""
    p = os.path.abspath(path)

    if os.path.isdir(p):
        p = os.path.join(p, "lbreg.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(path: str) -> None:
    """Create tables if they do not exist."""
    with connect(path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              host TEXT,
              backend TEXT,
              message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS registrations (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              host TEXT NOT NULL,
              backend TEXT NOT NULL,
              outcome TEXT NOT NULL -- created|added|present|malformed|unknown
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_registrations_host ON registrations(host);
            """
        )


def log_event(path: str, level: str, message: str, host: str | None = None, backend: str | None = None) -> None:
    with connect(path) as conn:
        conn.execute(
            "INSERT INTO events (ts, level, host, backend, message) VALUES (?, ?, ?, ?, ?)",
            (utc_now(), level.upper(), host, backend, message),
        )


def record_registration(path: str, host: str, backend: str, outcome: str) -> None:
    with connect(path) as conn:
        conn.execute(
            "INSERT INTO registrations (ts, host, backend, outcome) VALUES (?, ?, ?, ?)",
            (utc_now(), host, backend, outcome),
        )


@dataclass(frozen=True)
class RegistrationRow:
    id: int
    ts: str
    host: str
    backend: str
    outcome: str


def _rows_to_dataclass(rows: Iterable[sqlite3.Row], cls: Any) -> list[Any]:
    out: list[Any] = []
    for r in rows:
        out.append(cls(**dict(r)))
    return out


def list_registrations(path: str, host: str | None = None) -> list[RegistrationRow]:
    with connect(path) as conn:
        if host is not None:
            cur = conn.execute("SELECT * FROM registrations WHERE host=? ORDER BY id", (host,))
        else:
            cur = conn.execute("SELECT * FROM registrations ORDER BY id")
        return _rows_to_dataclass(cur.fetchall(), RegistrationRow)


def latest_events(path: str, limit: int = 100) -> list[dict[str, Any]]:
    with connect(path) as conn:
        rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
