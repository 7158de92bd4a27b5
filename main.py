"""ASGI entry point: `uvicorn main:app`.

Settings are read from LBREG_* environment variables once, here.
"""
from lbreg.api import create_app
from lbreg.settings import Settings

app = create_app(Settings.from_env())
