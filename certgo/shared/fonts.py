from __future__ import annotations

import hashlib
import os

from flask import current_app
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from .certificates_layout import FontSpec
from .errors import FontEmbedError

SCRIPT_FONT_PREFIX = "CertScript"
SCRIPT_BOLD_FONT_PREFIX = "CertScriptBold"

HELVETICA = FontSpec("Helvetica", "Helvetica-Bold")


def _registered_name(prefix: str, path: str) -> str:
    digest = hashlib.sha1(os.path.realpath(path).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:8]}"


def embed_ttf(path: str | None, prefix: str = SCRIPT_FONT_PREFIX) -> str:
    """Register a TrueType file with reportlab and return its font name."""
    if not path or not os.path.isfile(path):
        raise FontEmbedError(f"Font file not found: {path}")
    name = _registered_name(prefix, path)
    if name in pdfmetrics.getRegisteredFontNames():
        return name
    try:
        pdfmetrics.registerFont(TTFont(name, path))
    except Exception as exc:
        raise FontEmbedError(f"Could not embed font {path}: {exc}") from exc
    return name


def load_script_font() -> FontSpec:
    """Script face for human-readable fields.

    SCRIPT_FONT_BOLD_PATH is optional; without it bold runs are drawn with
    the faux-bold offset technique.
    """
    regular = embed_ttf(current_app.config.get("SCRIPT_FONT_PATH"))
    bold = None
    bold_path = current_app.config.get("SCRIPT_FONT_BOLD_PATH")
    if bold_path:
        try:
            bold = embed_ttf(bold_path, SCRIPT_BOLD_FONT_PREFIX)
        except FontEmbedError as exc:
            current_app.logger.warning(
                "[CERT-FONT] bold face unavailable (%s); using faux bold", exc
            )
    return FontSpec(regular, bold)
