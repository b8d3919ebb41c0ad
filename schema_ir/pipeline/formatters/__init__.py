from .base import Formatter
from .black_formatter import BlackFormatter

__all__ = ["BlackFormatter", "Formatter"]
