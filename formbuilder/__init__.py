"""Dynamic form builder service: form definitions, derived validation and responses."""

from formbuilder.main import create_app

__all__ = ["create_app"]
