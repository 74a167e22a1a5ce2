"""mongosetup: seeds the developer user into MongoDB."""

__version__ = "0.1.0"

__all__ = ["__version__"]
