"""Exceptions raised by pyssr."""


class PyssrError(Exception):
    """Base class for pyssr errors."""


class ConfigError(PyssrError):
    """Raised when a configuration file cannot be loaded."""


class TemplateError(PyssrError):
    """Raised when the HTML shell template cannot be split."""


class BundleError(PyssrError):
    """Raised when a server bundle fails to compile or has no render entry point."""

    def __init__(self, message: str, file_path: str = "", line: int = 0):
        self.message = message
        self.file_path = file_path
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_path and self.line:
            return f"{self.file_path}:{self.line}: {self.message}"
        if self.file_path:
            return f"{self.file_path}: {self.message}"
        return self.message


class StreamConsumedError(PyssrError):
    """Raised when a finished render stream is iterated again."""


class NotFound(PyssrError):
    """Raised by a bundle when no page matches the requested URL."""

    code = "404"
    status_code = 404

    def __init__(self, url: str = ""):
        self.url = url
        super().__init__(f"No page for {url}" if url else "Not found")
