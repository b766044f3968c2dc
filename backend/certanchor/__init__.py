"""Certificate integrity and anchoring backend."""

__version__ = "0.1.0"
