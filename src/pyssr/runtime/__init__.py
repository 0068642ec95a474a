"""Runtime components."""

from pyssr.runtime.app import SSRApp, create_app
from pyssr.runtime.cache import LRUCache
from pyssr.runtime.renderer import BundleRenderer, RenderContext, Renderer, RenderStream, create_renderer
from pyssr.runtime.state import RenderState, StateHolder
from pyssr.runtime.template import TemplateParts, parse_template

__all__ = [
    "SSRApp",
    "create_app",
    "LRUCache",
    "BundleRenderer",
    "RenderContext",
    "Renderer",
    "RenderStream",
    "create_renderer",
    "RenderState",
    "StateHolder",
    "TemplateParts",
    "parse_template",
]
