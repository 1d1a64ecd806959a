"""Snippets HTML embebibles (formularios y salas de vídeo).

Por qué Jinja2:
- Autoescape de atributos sin concatenar strings a mano.
- Las plantillas son pequeñas y viven aquí (DictLoader), sin ficheros aparte.
"""

from __future__ import annotations

from functools import lru_cache

from jinja2 import DictLoader, Environment, select_autoescape

_TEMPLATES = {
    "form_iframe.html": (
        '<iframe src="{{ src }}" title="{{ title }}" width="{{ width }}" height="{{ height }}"'
        ' frameborder="0" style="border:none;"{% if allow_transparency %} allowtransparency="true"{% endif %}>'
        "</iframe>"
    ),
    "meeting_iframe.html": (
        '<iframe src="{{ src }}" title="{{ title }}" width="{{ width }}" height="{{ height }}"'
        ' frameborder="0" allow="camera; microphone; fullscreen; display-capture" allowfullscreen></iframe>'
    ),
}


@lru_cache(maxsize=1)
def _get_env() -> Environment:
    return Environment(
        loader=DictLoader(_TEMPLATES),
        autoescape=select_autoescape(["html", "xml"]),
    )


def _css_size(value: int | str) -> str:
    return f"{value}px" if isinstance(value, int) else str(value)


def render_form_iframe(
    src: str,
    *,
    title: str = "Form",
    width: int | str = "100%",
    height: int | str = 600,
    allow_transparency: bool = False,
) -> str:
    return _get_env().get_template("form_iframe.html").render(
        src=src,
        title=title,
        width=_css_size(width),
        height=_css_size(height),
        allow_transparency=allow_transparency,
    )


def render_meeting_iframe(
    src: str,
    *,
    title: str = "Meeting",
    width: int | str = "100%",
    height: int | str = 600,
) -> str:
    return _get_env().get_template("meeting_iframe.html").render(
        src=src,
        title=title,
        width=_css_size(width),
        height=_css_size(height),
    )
