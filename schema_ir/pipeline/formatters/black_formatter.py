"""
Black formatter for emitted Python declarations.
"""

from __future__ import annotations

import logging

from ..config import FormatterConfig
from .base import Formatter

logger = logging.getLogger(__name__)


class BlackFormatter(Formatter):
    """Formats declarations with black, when it is installed."""

    def __init__(self):
        self._black = None
        self._available = None

    def is_available(self) -> bool:
        if self._available is None:
            try:
                import black

                self._black = black
                self._available = True
            except ImportError:
                self._available = False
        return self._available

    def format(self, code: str, config: FormatterConfig) -> str:
        if not self.is_available():
            logger.warning("black is not installed, declarations are left unformatted")
            return code

        black = self._black
        target_versions = set()
        target = getattr(black.TargetVersion, config.target_version.upper(), None)
        if target is not None:
            target_versions.add(target)

        mode = black.Mode(
            target_versions=target_versions,
            line_length=config.line_length,
            string_normalization=config.string_normalization,
        )
        try:
            return black.format_str(code, mode=mode)
        except black.InvalidInput as e:
            logger.warning("black could not format the declarations: %s", e)
            return code
