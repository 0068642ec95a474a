"""Streaming page response: render chunks wrapped in the shell template."""
import json
import logging
import time
from typing import Any, AsyncIterator, List, Mapping, Optional

from starlette.responses import HTMLResponse, Response
from starlette.types import Receive, Scope, Send

from pyssr.runtime.renderer import RenderContext, RenderStream, is_not_found
from pyssr.runtime.template import TemplateParts

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = "404 | Page Not Found"
ERROR_BODY = "Internal Error 500"
STATE_GLOBAL = "window.__INITIAL_STATE__"

# Characters that could end a <script> element or break JS string parsing
_SCRIPT_ESCAPES = {
    "<": "\\u003C",
    ">": "\\u003E",
    "/": "\\u002F",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def serialize_state(value: Any) -> str:
    """JSON-encode ``value`` so it is safe to embed inside a script element."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return "".join(_SCRIPT_ESCAPES.get(ch, ch) for ch in text)


def state_script(value: Any) -> str:
    return f"<script>{STATE_GLOBAL}={serialize_state(value)}</script>"


async def stream_page(stream: RenderStream, template: TemplateParts, context: RenderContext) -> AsyncIterator[str]:
    """Yield the page: head, every render chunk in order, state script, tail.

    The head goes out with the first chunk. An empty render still produces
    head and tail.
    """
    head_sent = False
    async for chunk in stream:
        if not head_sent:
            head_sent = True
            yield template.head
        yield chunk

    if not head_sent:
        yield template.head
    if context.initial_state is not None:
        yield state_script(context.initial_state)
    yield template.tail


def error_response(exc: BaseException, url: str, headers: Optional[Mapping[str, str]] = None) -> Response:
    """Map a render failure to its fixed response, logging anything but not-found."""
    if is_not_found(exc):
        return HTMLResponse(NOT_FOUND_BODY, status_code=404, headers=headers)
    logger.error("error during render: %s", url, exc_info=exc)
    return HTMLResponse(ERROR_BODY, status_code=500, headers=headers)


class PageResponse(Response):
    """Drives a render stream straight into the ASGI send channel.

    The response start is held back until the first piece of the page is
    ready, so failures that happen before any output get a real 404/500.
    After output has started the status can no longer change: the body is
    ended without the tail and the failure is logged. With ``buffered=True``
    the whole page is collected first and a failure always replaces it.
    """

    media_type = "text/html"

    def __init__(
        self,
        stream: RenderStream,
        template: TemplateParts,
        context: RenderContext,
        headers: Optional[Mapping[str, str]] = None,
        buffered: bool = False,
    ) -> None:
        self.stream = stream
        self.template = template
        self.context = context
        self.buffered = buffered
        self.status_code = 200
        self.background = None
        self._extra_headers = dict(headers or {})
        self.init_headers(headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        started_at = time.perf_counter()
        url = self.context.url
        pieces = stream_page(self.stream, self.template, self.context)
        collected: List[bytes] = []
        started = False
        failure: Optional[BaseException] = None

        try:
            while True:
                try:
                    piece = await pieces.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as exc:
                    failure = exc
                    break

                body = piece.encode("utf-8")
                if self.buffered:
                    collected.append(body)
                    continue
                if not started:
                    await self._start(send)
                    started = True
                await send({"type": "http.response.body", "body": body, "more_body": True})
        finally:
            await pieces.aclose()
            await self.stream.aclose()

        if failure is not None:
            if started:
                self._log_partial_failure(failure, url)
                await send({"type": "http.response.body", "body": b"", "more_body": False})
                return
            response = error_response(failure, url, self._extra_headers)
            await response(scope, receive, send)
            return

        if self.buffered:
            await self._start(send)
            await send({"type": "http.response.body", "body": b"".join(collected), "more_body": False})
        else:
            if not started:
                await self._start(send)
            await send({"type": "http.response.body", "body": b"", "more_body": False})

        logger.debug("whole request: %dms", (time.perf_counter() - started_at) * 1000)

    async def _start(self, send: Send) -> None:
        await send({"type": "http.response.start", "status": self.status_code, "headers": self.raw_headers})

    def _log_partial_failure(self, exc: BaseException, url: str) -> None:
        if is_not_found(exc):
            logger.warning("not found after output started, response truncated: %s", url)
        else:
            logger.error("error during render after output started: %s", url, exc_info=exc)
