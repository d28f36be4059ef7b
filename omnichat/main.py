"""ASGI entry point: ``uvicorn omnichat.main:app``."""

from omnichat.core.app import create_app

app = create_app()
