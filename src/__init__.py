"""Ambassador — governance engine for a content-marketing workspace."""

__version__ = "0.3.0"
