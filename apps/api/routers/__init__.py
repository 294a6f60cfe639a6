"""Routers package."""

from . import (
    health,
    jobs,
    scripts,
)
