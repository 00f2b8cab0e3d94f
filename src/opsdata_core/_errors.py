"""Error types raised by the engine."""

from typing import Any, Optional


class ConfigurationError(ValueError):
    """A caller-supplied option is missing or invalid.

    Raised before any rows are processed. ``option`` names the offending
    setting and ``value`` carries what was supplied, so the calling layer can
    point the user at it.
    """

    def __init__(self, message: str, option: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.option = option
        self.value = value
