"""pyssr - stream server-rendered pages from a precompiled bundle."""

__version__ = "0.1.0"
