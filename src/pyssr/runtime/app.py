"""Main ASGI application."""
import logging
from typing import Optional

import starlette
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route
from starlette.types import Receive, Scope, Send
import uvicorn

from pyssr.config import Settings
from pyssr.runtime.cache import LRUCache
from pyssr.runtime.error_page import build_error_page
from pyssr.runtime.files import StaticDirectory, StaticFile
from pyssr.runtime.renderer import RenderContext, load_renderer
from pyssr.runtime.state import StateHolder
from pyssr.runtime.streaming import PageResponse, error_response
from pyssr.runtime.template import load_template

logger = logging.getLogger(__name__)

NOT_READY_BODY = "On the run, just be patient~ "


def server_info() -> str:
    """Value of the Server header: HTTP framework and ASGI server versions."""
    return f"starlette/{starlette.__version__} uvicorn/{uvicorn.__version__}"


def request_url(request: Request) -> str:
    """Path plus query string, as the bundle sees it."""
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


class SSRApp:
    """Server-rendering application: static build output plus a catch-all render route."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        state: Optional[StateHolder] = None,
        cache: Optional[LRUCache] = None,
        load_artifacts: bool = True,
    ):
        self.settings = settings or Settings()
        self.state = state or StateHolder()
        self.cache = cache if cache is not None else LRUCache(maxsize=self.settings.cache_max, ttl=self.settings.cache_ttl)
        self.server_info = server_info()

        if self.settings.production and load_artifacts:
            self.load_production()

        s = self.settings
        # Server-only artifacts stay private even though they sit in dist/
        private = (s.bundle, s.template)

        routes = [
            Route('/_pyssr/health', self._handle_health, methods=['GET']),
            Route('/favicon.ico', StaticFile(s.favicon_path, s.max_age(True), 'image/png').endpoint, methods=['GET']),
            Route(
                '/service-worker.js',
                StaticFile(s.service_worker_path, s.max_age(True), 'application/javascript').endpoint,
                methods=['GET'],
            ),
            Route(
                '/manifest.json',
                StaticFile(s.manifest_path, s.max_age(False), 'application/manifest+json').endpoint,
                methods=['GET'],
            ),
            Mount('/dist', app=StaticDirectory(s.dist_path, s.max_age(True), exclude=private), name='dist'),
            Mount('/public', app=StaticDirectory(s.public_path, s.max_age(True)), name='public'),
            # Catch-all render route, must be last
            Route('/{path:path}', self._handle_request, methods=['GET']),
        ]

        middleware = []
        if s.compress:
            middleware.append(Middleware(GZipMiddleware, minimum_size=0))

        self.app = Starlette(routes=routes, middleware=middleware)
        self.app.state.pyssr = self

    def load_production(self) -> None:
        """Read the built bundle and template; errors propagate so startup fails fast."""
        renderer = load_renderer(self.settings.bundle_path, cache=self.cache)
        template = load_template(self.settings.template_path)
        self.state.update(renderer, template)
        logger.info("Loaded server bundle %s", self.settings.bundle_path)

    async def _handle_request(self, request: Request) -> Response:
        """Render the requested URL into the shell template."""
        snapshot = self.state.snapshot()
        headers = {"Server": self.server_info}

        if not snapshot.ready:
            if snapshot.build_error and not self.settings.production:
                return build_error_page("Server bundle failed to build", snapshot.build_error, headers)
            return PlainTextResponse(NOT_READY_BODY)

        context = RenderContext(url=request_url(request), request=request)
        try:
            stream = snapshot.renderer.render_to_stream(context)
        except Exception as exc:
            return error_response(exc, context.url, headers)
        return PageResponse(
            stream,
            snapshot.template,
            context,
            headers=headers,
            buffered=self.settings.buffer,
        )

    async def _handle_health(self, request: Request) -> JSONResponse:
        snapshot = self.state.snapshot()
        return JSONResponse({
            'ready': snapshot.ready,
            'mode': self.settings.mode,
            'generation': snapshot.generation,
            'build_error': snapshot.build_error,
            'cache': self.cache.stats(),
        })

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI interface."""
        await self.app(scope, receive, send)


def create_app(settings: Optional[Settings] = None) -> SSRApp:
    """Application factory, settings resolved from config file and environment when omitted."""
    if settings is None:
        from pyssr.config import resolve_settings

        settings = resolve_settings()
    return SSRApp(settings)
