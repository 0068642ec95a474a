import pytest

from pyssr.exceptions import TemplateError
from pyssr.runtime.template import CONTENT_MARKER, TemplateParts, load_template, parse_template


@pytest.mark.parametrize(
    "template",
    [
        "<html><body><!-- APP --></body></html>",
        "<!-- APP --></body></html>",
        "<html><body><!-- APP -->",
        "<!-- APP -->",
    ],
)
def test_split_reconstructs_template_without_marker(template):
    parts = parse_template(template)
    assert parts.head + parts.tail == template.replace(CONTENT_MARKER, "", 1)
    assert CONTENT_MARKER not in parts.head


def test_split_positions():
    parts = parse_template("<head></head><!-- APP --><footer/>")
    assert parts == TemplateParts(head="<head></head>", tail="<footer/>")

    assert parse_template("<!-- APP -->tail") == TemplateParts("", "tail")
    assert parse_template("head<!-- APP -->") == TemplateParts("head", "")


def test_only_first_marker_is_consumed():
    parts = parse_template("a<!-- APP -->b<!-- APP -->c")
    assert parts.head == "a"
    assert parts.tail == "b<!-- APP -->c"


def test_missing_marker_raises():
    with pytest.raises(TemplateError):
        parse_template("<html><body></body></html>")


def test_custom_marker():
    parts = parse_template("<div>{{APP}}</div>", marker="{{APP}}")
    assert parts == TemplateParts("<div>", "</div>")


def test_load_template(tmp_path):
    path = tmp_path / "index.html"
    path.write_text("<body><!-- APP --></body>", encoding="utf-8")
    assert load_template(path) == TemplateParts("<body>", "</body>")

    with pytest.raises(TemplateError):
        load_template(tmp_path / "missing.html")
