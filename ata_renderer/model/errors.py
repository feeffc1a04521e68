"""Exception types raised by the typesetting and export engine."""
from __future__ import annotations


class ExportPreconditionError(ValueError):
    """An export was requested without the data it cannot run without."""


class RasterizationError(RuntimeError):
    """Markup could not be rendered into a bitmap."""


class ExportInProgressError(RuntimeError):
    """Another export is still running on the same session."""


class TemplateNotFoundError(KeyError):
    """No stored header template carries the requested id."""
