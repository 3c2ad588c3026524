"""ocrchat: extract text from an image and chat about it."""

__version__ = "0.1.0"
