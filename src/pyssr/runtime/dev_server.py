"""Development server with hot reload, and the production runner."""
import asyncio
import contextlib
import logging
import signal
from pathlib import Path
from typing import Iterable, Optional, Set, Tuple

from watchfiles import Change, awatch

from pyssr.config import Settings
from pyssr.exceptions import BundleError, TemplateError
from pyssr.runtime.app import SSRApp
from pyssr.runtime.cache import LRUCache
from pyssr.runtime.renderer import create_renderer
from pyssr.runtime.state import StateHolder
from pyssr.runtime.template import parse_template

logger = logging.getLogger(__name__)


class DevReloader:
    """Keeps the renderer and template in step with the build output directory."""

    def __init__(self, state: StateHolder, settings: Settings, cache: Optional[LRUCache] = None):
        self.state = state
        self.settings = settings
        self.cache = cache

    def bundle_updated(self, source: str) -> bool:
        """Rebuild the renderer; on failure keep the previous one and record the error."""
        path = str(self.settings.bundle_path)
        try:
            renderer = create_renderer(source, path, cache=self.cache)
        except BundleError as e:
            logger.error("Server bundle failed to build: %s", e)
            self.state.set_build_error(str(e))
            return False
        if self.cache is not None:
            # Cached fragments may come from the old bundle
            self.cache.clear()
        self.state.update_renderer(renderer)
        logger.info("Server bundle updated.")
        return True

    def template_updated(self, text: str) -> bool:
        try:
            template = parse_template(text)
        except TemplateError as e:
            logger.error("Template %s rejected: %s", self.settings.template_path, e)
            return False
        self.state.update_template(template)
        logger.info("Template updated.")
        return True

    def load_initial(self) -> None:
        """Pick up whatever the build has already written."""
        if self.settings.bundle_path.is_file():
            self._reload_bundle()
        else:
            logger.info("Waiting for server bundle at %s", self.settings.bundle_path)
        if self.settings.template_path.is_file():
            self._reload_template()
        else:
            logger.info("Waiting for template at %s", self.settings.template_path)

    def apply_changes(self, changes: Iterable[Tuple[Change, str]]) -> Set[str]:
        """Reload the artifacts touched by a watchfiles change set.

        Returns the names of what was reloaded ("bundle", "template").
        """
        bundle_path = self.settings.bundle_path.resolve()
        template_path = self.settings.template_path.resolve()

        touched = set()
        for change_type, file_path in changes:
            if change_type == Change.deleted:
                continue
            path = Path(file_path).resolve()
            if path == bundle_path:
                touched.add("bundle")
            elif path == template_path:
                touched.add("template")

        reloaded = set()
        if "bundle" in touched and self._reload_bundle():
            reloaded.add("bundle")
        if "template" in touched and self._reload_template():
            reloaded.add("template")
        return reloaded

    async def watch(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Watch the build output directory until ``stop_event`` is set."""
        dist = self.settings.dist_path
        dist.mkdir(parents=True, exist_ok=True)
        logger.info("Watching %s for changes...", dist)

        async for changes in awatch(dist, stop_event=stop_event):
            try:
                self.apply_changes(changes)
            except Exception:
                logger.exception("Watcher error")

    def _reload_bundle(self) -> bool:
        path = self.settings.bundle_path
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Cannot read server bundle %s: %s", path, e)
            return False
        return self.bundle_updated(source)

    def _reload_template(self) -> bool:
        path = self.settings.template_path
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Cannot read template %s: %s", path, e)
            return False
        return self.template_updated(text)


def _uvicorn_server(app: SSRApp, settings: Settings):
    import uvicorn

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
        # Rendered pages carry their own Server header
        server_header=False,
    )
    return uvicorn.Server(config)


async def run_dev_server(settings: Settings) -> None:
    """Run development server with hot reload."""
    logging.basicConfig(level=logging.INFO)

    app = SSRApp(settings, load_artifacts=False)
    reloader = DevReloader(app.state, settings, cache=app.cache)
    reloader.load_initial()

    # Create shutdown event
    shutdown_event = asyncio.Event()

    def _handle_signal() -> None:
        logger.info("Shutting down...")
        shutdown_event.set()

    # Register signal handlers
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _handle_signal)
    except NotImplementedError:
        pass

    server = _uvicorn_server(app, settings)
    # Disable Uvicorn's signal handlers so we can manage it
    server.install_signal_handlers = lambda: None  # type: ignore
    if hasattr(server, "capture_signals"):
        server.capture_signals = contextlib.nullcontext  # type: ignore

    async def serve() -> None:
        try:
            await server.serve()
        finally:
            # Stop the watcher if the server exits on its own
            shutdown_event.set()

    async def stop_uvicorn() -> None:
        await shutdown_event.wait()
        server.should_exit = True

    logger.info("Running development server on http://%s:%s", settings.host, settings.port)
    async with asyncio.TaskGroup() as tg:
        tg.create_task(serve())
        tg.create_task(stop_uvicorn())
        tg.create_task(reloader.watch(shutdown_event))


def run_server(settings: Settings) -> None:
    """Run the production server; the bundle and template must already be built."""
    logging.basicConfig(level=logging.INFO)

    app = SSRApp(settings)
    logger.info("Running production server on http://%s:%s", settings.host, settings.port)
    _uvicorn_server(app, settings).run()
