"""HTTP API for Drip."""

from .middleware import MIDDLEWARES
from .routes import FaucetRoutes, create_app

__all__ = ["FaucetRoutes", "MIDDLEWARES", "create_app"]
