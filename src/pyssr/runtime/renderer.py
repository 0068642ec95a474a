"""Bundle renderer - compiles a server bundle and streams its output."""

import enum
import inspect
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Optional, Protocol, runtime_checkable

from starlette.concurrency import iterate_in_threadpool
from starlette.requests import Request

from pyssr.exceptions import BundleError, NotFound, StreamConsumedError
from pyssr.runtime.cache import LRUCache

RENDER_ENTRY_POINT = "render"


@dataclass
class RenderContext:
    """Per-request context passed to the bundle.

    The bundle may set ``initial_state``; it is inlined into the page once the
    render completes.
    """

    url: str
    request: Optional[Request] = None
    initial_state: Any = None
    extras: Dict[str, Any] = field(default_factory=dict)


class StreamState(enum.Enum):
    PENDING = "pending"
    CHUNK_READY = "chunk-ready"
    COMPLETED = "completed"
    FAILED = "failed"


class RenderStream:
    """Ordered, finite, single-use sequence of HTML fragments for one request."""

    def __init__(self, source: AsyncIterator[Any]):
        self._source = source
        self.state = StreamState.PENDING
        self.error: Optional[BaseException] = None
        self.chunks_emitted = 0

    @property
    def finished(self) -> bool:
        return self.state in (StreamState.COMPLETED, StreamState.FAILED)

    def __aiter__(self) -> "RenderStream":
        return self

    async def __anext__(self) -> str:
        if self.finished:
            raise StreamConsumedError(f"Render stream already {self.state.value}")
        try:
            chunk = await self._source.__anext__()
        except StopAsyncIteration:
            self.state = StreamState.COMPLETED
            raise
        except Exception as exc:
            self.state = StreamState.FAILED
            self.error = exc
            raise
        try:
            text = _to_text(chunk)
        except (TypeError, UnicodeDecodeError) as exc:
            self.state = StreamState.FAILED
            self.error = exc
            raise
        self.state = StreamState.CHUNK_READY
        self.chunks_emitted += 1
        return text

    async def aclose(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()


@runtime_checkable
class Renderer(Protocol):
    """Anything that can turn a request context into a render stream."""

    def render_to_stream(self, context: RenderContext) -> RenderStream: ...


class BundleRenderer:
    """Renderer around a bundle's ``render(context)`` callable.

    ``render`` may be an async generator, a generator (iterated in the thread
    pool), a coroutine or a plain function. Coroutines and functions may return
    a string or an iterable of strings.
    """

    def __init__(self, render_fn: Callable[[RenderContext], Any], cache: Optional[LRUCache] = None, source_path: str = ""):
        if not callable(render_fn):
            raise BundleError(f"'{RENDER_ENTRY_POINT}' is not callable", source_path)
        self.render_fn = render_fn
        self.cache = cache
        self.source_path = source_path

    def render_to_stream(self, context: RenderContext) -> RenderStream:
        return RenderStream(self._iterate(context))

    async def _iterate(self, context: RenderContext) -> AsyncIterator[Any]:
        result = self.render_fn(context)

        if hasattr(result, "__aiter__"):
            try:
                async for chunk in result:
                    yield chunk
            finally:
                if hasattr(result, "aclose"):
                    await result.aclose()
            return

        if inspect.isawaitable(result):
            result = await result
            if hasattr(result, "__aiter__"):
                async for chunk in result:
                    yield chunk
                return

        if result is None:
            return
        if isinstance(result, (str, bytes)):
            yield result
            return
        if isinstance(result, Iterable):
            async for chunk in iterate_in_threadpool(iter(result)):
                yield chunk
            return
        raise TypeError(f"render() returned unsupported type {type(result).__name__}")


def create_renderer(source: str, filename: str = "<bundle>", cache: Optional[LRUCache] = None) -> BundleRenderer:
    """Compile bundle source and return a renderer for its ``render`` function.

    The bundle runs in a fresh module with ``cache`` and ``NotFound`` available
    as globals.
    """
    try:
        code = compile(source, filename, "exec")
    except SyntaxError as e:
        raise BundleError(e.msg or "invalid syntax", filename, e.lineno or 0) from e

    module = type(sys)("pyssr_bundle")
    module.__file__ = filename
    module.cache = cache
    module.NotFound = NotFound
    module.RenderContext = RenderContext

    try:
        exec(code, module.__dict__)
    except Exception as e:
        raise BundleError(f"Bundle raised during import: {type(e).__name__}: {e}", filename) from e

    render_fn = getattr(module, RENDER_ENTRY_POINT, None)
    if render_fn is None:
        raise BundleError(f"Bundle does not define '{RENDER_ENTRY_POINT}(context)'", filename)
    return BundleRenderer(render_fn, cache=cache, source_path=filename)


def load_renderer(path: Path, cache: Optional[LRUCache] = None) -> BundleRenderer:
    """Read a bundle file and build a renderer from it."""
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise BundleError(f"Cannot read bundle: {e}", str(path)) from e
    return create_renderer(source, str(path), cache=cache)


def is_not_found(exc: BaseException) -> bool:
    """True when a render failure means the URL has no page."""
    if isinstance(exc, NotFound):
        return True
    code = getattr(exc, "code", None)
    if code in ("404", 404):
        return True
    return getattr(exc, "status_code", None) == 404


def _to_text(chunk: Any) -> str:
    if isinstance(chunk, str):
        return chunk
    if isinstance(chunk, (bytes, bytearray)):
        return bytes(chunk).decode("utf-8")
    raise TypeError(f"Render chunks must be str or bytes, got {type(chunk).__name__}")
