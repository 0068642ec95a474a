"""Swappable renderer/template state shared by the request handler and the reloader."""
from dataclasses import dataclass, replace
from typing import Optional

from pyssr.runtime.renderer import Renderer
from pyssr.runtime.template import TemplateParts


@dataclass(frozen=True)
class RenderState:
    """Immutable snapshot of what requests render with."""

    renderer: Optional[Renderer] = None
    template: Optional[TemplateParts] = None
    build_error: Optional[str] = None
    generation: int = 0

    @property
    def ready(self) -> bool:
        return self.renderer is not None and self.template is not None


class StateHolder:
    """Owns the current RenderState.

    Updates replace the snapshot wholesale. A request takes one snapshot at
    the start and keeps it, so a reload never changes the renderer under an
    in-flight render.
    """

    def __init__(self, initial: Optional[RenderState] = None):
        self._state = initial or RenderState()

    def snapshot(self) -> RenderState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state.ready

    def update_renderer(self, renderer: Renderer) -> RenderState:
        return self._swap(renderer=renderer, build_error=None)

    def update_template(self, template: TemplateParts) -> RenderState:
        return self._swap(template=template)

    def update(self, renderer: Renderer, template: TemplateParts) -> RenderState:
        """Set both values from the same build."""
        return self._swap(renderer=renderer, template=template, build_error=None)

    def set_build_error(self, detail: Optional[str]) -> RenderState:
        return self._swap(build_error=detail)

    def _swap(self, **changes) -> RenderState:
        self._state = replace(self._state, generation=self._state.generation + 1, **changes)
        return self._state
