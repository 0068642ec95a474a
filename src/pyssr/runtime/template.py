"""HTML shell template handling."""
from dataclasses import dataclass
from pathlib import Path

from pyssr.exceptions import TemplateError

CONTENT_MARKER = "<!-- APP -->"


@dataclass(frozen=True)
class TemplateParts:
    """The shell template split around the app marker."""

    head: str
    tail: str


def parse_template(template: str, marker: str = CONTENT_MARKER) -> TemplateParts:
    """Split ``template`` at the first ``marker``; the marker itself is dropped."""
    if not marker:
        raise TemplateError("Content marker must not be empty")
    i = template.find(marker)
    if i < 0:
        raise TemplateError(f"Template has no content marker {marker!r}")
    return TemplateParts(head=template[:i], tail=template[i + len(marker):])


def load_template(path: Path, marker: str = CONTENT_MARKER) -> TemplateParts:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateError(f"Cannot read template {path}: {e}") from e
    try:
        return parse_template(text, marker)
    except TemplateError as e:
        raise TemplateError(f"{path}: {e}") from e
