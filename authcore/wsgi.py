"""WSGI entry point."""
from authcore.app import create_app

app = create_app()
