"""Configuration loader for pyssr."""
import importlib.util
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pyssr.exceptions import ConfigError

DEFAULT_CONFIG_FILENAME = "pyssr.config.py"
DEFAULT_PORT = 8080
DEFAULT_HOST = "127.0.0.1"

# Environment variables
ENV_MODE = "PYSSR_ENV"
ENV_PORT = "PORT"
ENV_HOST = "HOST"

# 30 days, used for hashed build output in production
LONG_CACHE_SECONDS = 60 * 60 * 24 * 30

# Config file name -> Settings field
_CONFIG_KEYS = {
    "HOST": "host",
    "PORT": "port",
    "PRODUCTION": "production",
    "ROOT": "root",
    "DIST_DIR": "dist_dir",
    "PUBLIC_DIR": "public_dir",
    "TEMPLATE": "template",
    "BUNDLE": "bundle",
    "FAVICON": "favicon",
    "MANIFEST": "manifest",
    "SERVICE_WORKER": "service_worker",
    "CACHE_MAX": "cache_max",
    "CACHE_TTL": "cache_ttl",
    "STATIC_MAX_AGE": "static_max_age",
    "COMPRESS": "compress",
    "BUFFER": "buffer",
}


@dataclass(frozen=True)
class Settings:
    """Resolved server settings.

    Relative paths (``dist_dir``, ``public_dir``, ``favicon``, ``manifest``) are
    resolved against ``root``. ``template``, ``bundle`` and ``service_worker``
    live inside ``dist_dir``.
    """

    production: bool = False
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    root: Path = field(default_factory=Path.cwd)
    dist_dir: str = "dist"
    public_dir: str = "public"
    template: str = "index.html"
    bundle: str = "server_bundle.py"
    favicon: str = "public/logo-48.png"
    manifest: str = "manifest.json"
    service_worker: str = "service-worker.js"
    cache_max: int = 1000
    cache_ttl: float = 60 * 15
    static_max_age: int = LONG_CACHE_SECONDS
    compress: bool = True
    buffer: bool = False

    @property
    def mode(self) -> str:
        return "production" if self.production else "development"

    @property
    def dist_path(self) -> Path:
        return self._resolve(self.dist_dir)

    @property
    def public_path(self) -> Path:
        return self._resolve(self.public_dir)

    @property
    def template_path(self) -> Path:
        return self.dist_path / self.template

    @property
    def bundle_path(self) -> Path:
        return self.dist_path / self.bundle

    @property
    def service_worker_path(self) -> Path:
        return self.dist_path / self.service_worker

    @property
    def favicon_path(self) -> Path:
        return self._resolve(self.favicon)

    @property
    def manifest_path(self) -> Path:
        return self._resolve(self.manifest)

    def max_age(self, cacheable: bool) -> int:
        """Cache lifetime for a static route: long only for cacheable routes in production."""
        return self.static_max_age if cacheable and self.production else 0

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return Path(self.root) / path

    def merge(self, overrides: Mapping[str, Any]) -> "Settings":
        """Return a copy with the non-None overrides applied."""
        known = {f.name for f in fields(self)}
        values = {k: v for k, v in overrides.items() if k in known and v is not None}
        if "root" in values:
            values["root"] = Path(values["root"])
        return replace(self, **values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, base: Optional["Settings"] = None) -> "Settings":
        """Layer environment variables over ``base`` (or the defaults)."""
        environ = os.environ if environ is None else environ
        settings = base or cls()

        overrides: Dict[str, Any] = {}
        if ENV_MODE in environ:
            overrides["production"] = environ[ENV_MODE].strip().lower() == "production"
        if environ.get(ENV_PORT):
            try:
                overrides["port"] = int(environ[ENV_PORT])
            except ValueError:
                raise ConfigError(f"{ENV_PORT} must be an integer, got {environ[ENV_PORT]!r}")
        if environ.get(ENV_HOST):
            overrides["host"] = environ[ENV_HOST]
        return settings.merge(overrides)


def load_config(path: Path | str | None = None) -> Dict[str, Any]:
    """
    Load configuration from a python file.

    If path is provided, loads from there.
    Otherwise, looks for pyssr.config.py in the current working directory.

    Returns a dictionary of Settings field names mapped from the uppercase
    variables found in the config module. A missing file yields an empty dict.
    """
    if path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILENAME
    else:
        path = Path(path)

    if not path.exists():
        return {}

    spec = importlib.util.spec_from_file_location("pyssr_config", path)
    if spec is None or spec.loader is None:
        raise ConfigError(f"Cannot load config from {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    mapped_config = {}
    for key, name in _CONFIG_KEYS.items():
        if hasattr(module, key):
            mapped_config[name] = getattr(module, key)
    return mapped_config


def resolve_settings(
    config_path: Path | str | None = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """Build Settings from defaults, config file, environment and explicit overrides (in that order)."""
    base = Settings()
    if overrides.get("root") is not None and config_path is None:
        config_path = Path(overrides["root"]) / DEFAULT_CONFIG_FILENAME
    base = base.merge(load_config(config_path))
    settings = Settings.from_env(environ, base=base)
    return settings.merge(overrides)
