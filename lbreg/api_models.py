from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterServerRequest(BaseModel):
    host_port: int = Field(80, ge=1, le=65535, description="Public port of the host (not used for pool edits)")
    server: str = Field(..., min_length=1, description="Backend address, e.g. 10.0.0.3")
    server_port: int = Field(..., ge=1, le=65535, description="Backend port")


class PreviewRequest(BaseModel):
    host: str = Field(..., description="Host whose pool is edited; used verbatim")
    server: str = Field(..., min_length=1)
    server_port: int = Field(..., ge=1, le=65535)
    content: str | None = Field(None, description="Current pool file contents; omit if the file does not exist")
