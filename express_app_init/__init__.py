"""express-app-init: scaffold an Express backend project from a few choices."""

__version__ = "0.1.0"
