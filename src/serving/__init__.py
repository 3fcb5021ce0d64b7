"""Serving layer exposing ranked articles over HTTP."""

from .api import create_app

__all__ = ["create_app"]
