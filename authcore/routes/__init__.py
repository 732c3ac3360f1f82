"""HTTP routes."""
from authcore.routes.auth import auth_bp

__all__ = ["auth_bp"]
