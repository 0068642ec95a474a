"""Static file serving with explicit Cache-Control lifetimes."""
import logging
import posixpath
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Optional

from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import FileResponse, PlainTextResponse, Response
from starlette.staticfiles import StaticFiles
from starlette.types import Receive, Scope, Send

logger = logging.getLogger(__name__)


def cache_control(max_age: int) -> str:
    return f"public, max-age={max_age}"


class CachedStaticFiles(StaticFiles):
    """StaticFiles that stamps every file response with a fixed max-age."""

    def __init__(self, *args: Any, max_age: int = 0, exclude: Iterable[str] = (), **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.max_age = max_age
        # Paths relative to the served directory, e.g. "server/bundle.py"
        self.exclude = frozenset(PurePosixPath(posixpath.normpath(p)) for p in exclude)

    async def get_response(self, path: str, scope: Scope) -> Response:
        # Server-only build output (bundle source, shell template) is never public
        if PurePosixPath(posixpath.normpath(path)) in self.exclude:
            raise HTTPException(status_code=404)
        return await super().get_response(path, scope)

    def file_response(self, *args: Any, **kwargs: Any) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = cache_control(self.max_age)
        return response


class StaticDirectory:
    """Mount for a build directory that may not exist until the first build finishes.

    Requests 404 while the directory is absent; once it appears, they are
    served by a CachedStaticFiles instance.
    """

    def __init__(self, directory: Path, max_age: int = 0, exclude: Iterable[str] = ()):
        self.directory = Path(directory)
        self.max_age = max_age
        self.exclude = tuple(exclude)
        self._files: Optional[CachedStaticFiles] = None
        if not self.directory.is_dir():
            logger.warning("Static directory '%s' does not exist.", self.directory)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._files is None:
            if not self.directory.is_dir():
                response = PlainTextResponse("Not Found", status_code=404)
                await response(scope, receive, send)
                return
            self._files = CachedStaticFiles(directory=str(self.directory), max_age=self.max_age, exclude=self.exclude)
        await self._files(scope, receive, send)


class StaticFile:
    """Endpoint serving a single file; 404 while the file is absent."""

    def __init__(self, path: Path, max_age: int = 0, media_type: Optional[str] = None):
        self.path = Path(path)
        self.max_age = max_age
        self.media_type = media_type

    async def endpoint(self, request: Request) -> Response:
        if not self.path.is_file():
            return PlainTextResponse("Not Found", status_code=404)
        return FileResponse(
            self.path,
            media_type=self.media_type,
            headers={"Cache-Control": cache_control(self.max_age)},
        )
