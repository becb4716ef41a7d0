"""Placeholder thumbnails and fallback assets."""

from __future__ import annotations

import base64
from html import escape

_PLACEHOLDER_SVG = """<svg width="320" height="240" xmlns="http://www.w3.org/2000/svg">
  <rect width="320" height="240" fill="#667eea"/>
  <text x="160" y="120" font-family="Arial" font-size="16" text-anchor="middle" fill="white">{label}</text>
</svg>
"""

_FALLBACK_HTML = "<html><body><h1>{title}</h1></body></html>"


def data_uri(content_type: str, payload: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(payload).decode('ascii')}"


def placeholder_thumbnail(label: str) -> str:
    """Return an SVG data URI used when the provider supplies no thumbnail."""
    svg = _PLACEHOLDER_SVG.format(label=escape(label))
    return data_uri("image/svg+xml", svg.encode("utf-8"))


def fallback_page(title: str) -> str:
    """Return the HTML data URI the UI shows in place of a failed artifact."""
    return data_uri("text/html", _FALLBACK_HTML.format(title=escape(title)).encode("utf-8"))
