# API Routers

from . import admin, health, prices, registry, snapshots

__all__ = ["admin", "health", "prices", "registry", "snapshots"]
