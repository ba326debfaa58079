"""envkeep — pick environment variable variants from an encrypted vault."""
from .version import __version__, __title__

__all__ = ["__version__", "__title__"]
