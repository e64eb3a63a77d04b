"""ASGI entrypoint for the line sketcher API."""

from line_sketcher.api.app import create_app
from line_sketcher.containers import build_container

app = create_app(build_container())
