# gigpack/errors.py
from __future__ import annotations


class GigPackError(Exception):
    """Base class for errors raised by gig pack library code."""


class ConfigError(GigPackError):
    pass


class NotAuthenticated(GigPackError):
    pass


class GigValidationError(GigPackError):
    pass


class GigSaveError(GigPackError):
    """A write against Supabase failed while saving a gig pack."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage
