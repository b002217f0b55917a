# File: kcd/utils/errors.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Typed project errors.
# Notes: Non-fatal conditions are DrawWarning records, not exceptions.
from __future__ import annotations


class KcdError(Exception):
    """Base project error."""


class KcdValidationError(KcdError):
    """Invalid input (degenerate key, missing mandatory profile field...)."""


class KcdSchemaError(KcdValidationError):
    """Malformed profile/layout file or unsupported value."""


class KcdIOError(KcdError):
    """Read/write failure."""


class KcdFontError(KcdError):
    """Font bytes could not be parsed."""


class KcdEncodeError(KcdError):
    """An output encoder failed. The Drawing stays usable."""


class KcdInternalError(KcdError):
    """Unexpected failure inside the drawing pass. No partial output."""
