from __future__ import annotations

import secrets
from dataclasses import asdict
from typing import Any, Callable

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from . import db
from .api_models import PreviewRequest, RegisterServerRequest
from .errors import LoadBalancerError
from .nginx import Nginx
from .pool import compute_update, parse_servers
from .settings import Settings

BalancerFactory = Callable[[Settings], Any]


def _default_balancer(settings: Settings) -> Nginx:
    # tables are created once by create_app
    return Nginx.from_settings(settings, create_tables=False)


def create_app(settings: Settings | None = None, balancer_factory: BalancerFactory | None = None) -> FastAPI:
    """Build the HTTP API.

    A balancer is created per request so the SSH key is re-read each time.
    """
    settings = settings or Settings.from_env()
    factory = balancer_factory or _default_balancer
    if settings.events_db:
        db.init_db(settings.events_db)

    app = FastAPI(title="Load Balancer Registrar")
    security = HTTPBasic(auto_error=False)

    def require_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str | None:
        if not settings.api_auth_enabled:
            return None
        if credentials is None or not (
            secrets.compare_digest(credentials.username, settings.api_user or "")
            and secrets.compare_digest(credentials.password, settings.api_password or "")
        ):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.post("/pools/preview")
    def preview(req: PreviewRequest, user: str | None = Depends(require_user)) -> dict[str, Any]:
        upd = compute_update(req.content, req.host, req.server, req.server_port)
        return {"content": upd.content, "changed": upd.changed, "servers": parse_servers(upd.content)}

    @app.post("/pools/{host}/servers")
    def register_server(host: str, req: RegisterServerRequest, user: str | None = Depends(require_user)) -> dict[str, Any]:
        try:
            balancer = factory(settings)
            outcome = balancer.update(host, req.host_port, req.server, req.server_port)
        except LoadBalancerError as e:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"kind": e.kind, "error": str(e)},
            ) from e
        return {"host": host, "server": f"{req.server}:{req.server_port}", "outcome": outcome}

    @app.get("/events")
    def events(limit: int = 50, user: str | None = Depends(require_user)) -> list[dict[str, Any]]:
        if not settings.events_db:
            return []
        return db.latest_events(settings.events_db, limit=max(1, min(1000, limit)))

    @app.get("/registrations")
    def registrations(host: str | None = None, user: str | None = Depends(require_user)) -> list[dict[str, Any]]:
        if not settings.events_db:
            return []
        return [asdict(r) for r in db.list_registrations(settings.events_db, host=host)]

    return app
