"""Exceptions raised by the OI history pipeline."""


class InvalidConfigError(ValueError):
    """Structurally invalid pipeline configuration (e.g. an even strike count)."""
