"""Validation of build artifacts."""
from typing import List

from pyssr.config import Settings
from pyssr.exceptions import BundleError, TemplateError
from pyssr.runtime.renderer import load_renderer
from pyssr.runtime.template import load_template


def validate_build(settings: Settings) -> List[str]:
    """Check that the bundle compiles and the template splits."""
    errors = []

    if not settings.dist_path.is_dir():
        return [f"Build directory not found: {settings.dist_path}"]

    if not settings.bundle_path.is_file():
        errors.append(f"Server bundle not found: {settings.bundle_path}")
    else:
        try:
            load_renderer(settings.bundle_path)
        except BundleError as e:
            errors.append(str(e))

    if not settings.template_path.is_file():
        errors.append(f"Template not found: {settings.template_path}")
    else:
        try:
            load_template(settings.template_path)
        except TemplateError as e:
            errors.append(str(e))

    return errors
