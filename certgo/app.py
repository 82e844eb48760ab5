import json
import logging
import os

from flask import Flask

from .constants import DEFAULT_SIGNER_NAME_LINES, DEFAULT_SIGNER_UTC_OFFSET, TEMPLATE_FILENAMES
from .services.signatures import (
    DEFAULT_CONTACT,
    DEFAULT_LOCATION,
    DEFAULT_REASON,
    DEFAULT_SIGNER_LABEL,
)
from .shared.credentials import DEV_PASSWORD


def _env_layout():
    raw = os.getenv("CERT_LAYOUT")
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        logging.warning("CERT_LAYOUT is not valid JSON; using layout defaults")
        return {}


def create_app(config=None):
    app = Flask(__name__)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO)
    app.logger.setLevel(logging.INFO)

    site_root = os.getenv("SITE_ROOT", "/srv")
    app.config["SITE_ROOT"] = site_root
    assets_dir = os.path.join(app.root_path, "assets")

    env_keys = (
        "CERTIFICATES_DIR",
        "TEMPLATES_DIR",
        "DEFAULT_TEMPLATE_PATH",
        "SCRIPT_FONT_PATH",
        "SCRIPT_FONT_BOLD_PATH",
        "SIGNATURE_IMAGE_PATH",
        "P12_PATH",
        "P12_PASSWORD",
        "SIGNER_NAME_LINES",
        "SIGNER_UTC_OFFSET",
        "SIGNATURE_REASON",
        "SIGNATURE_LOCATION",
        "SIGNATURE_CONTACT",
        "SIGNATURE_NAME",
    )
    for key in env_keys:
        value = os.getenv(key)
        if value:
            app.config[key] = value
    app.config["CERT_LAYOUT"] = _env_layout()

    if config:
        app.config.update(config)

    cfg = app.config
    cfg.setdefault(
        "CERTIFICATES_DIR", os.path.join(cfg["SITE_ROOT"], "certificates")
    )
    cfg.setdefault("TEMPLATES_DIR", os.path.join(assets_dir, "templates"))
    cfg.setdefault(
        "DEFAULT_TEMPLATE_PATH",
        os.path.join(cfg["TEMPLATES_DIR"], TEMPLATE_FILENAMES["participation"]),
    )
    cfg.setdefault("SCRIPT_FONT_PATH", os.path.join(assets_dir, "fonts", "script.ttf"))
    cfg.setdefault("SCRIPT_FONT_BOLD_PATH", None)
    cfg.setdefault(
        "SIGNATURE_IMAGE_PATH", os.path.join(assets_dir, "signature", "signature.png")
    )
    cfg.setdefault("P12_PATH", os.path.join(assets_dir, "signature", "certificate.p12"))
    cfg.setdefault("SIGNER_NAME_LINES", DEFAULT_SIGNER_NAME_LINES)
    cfg.setdefault("SIGNER_UTC_OFFSET", DEFAULT_SIGNER_UTC_OFFSET)
    cfg.setdefault("SIGNATURE_REASON", DEFAULT_REASON)
    cfg.setdefault("SIGNATURE_LOCATION", DEFAULT_LOCATION)
    cfg.setdefault("SIGNATURE_CONTACT", DEFAULT_CONTACT)
    cfg.setdefault("SIGNATURE_NAME", DEFAULT_SIGNER_LABEL)
    if not cfg.get("P12_PASSWORD"):
        app.logger.warning(
            "[SIGN] P12_PASSWORD not set; using the development password"
        )
        cfg["P12_PASSWORD"] = DEV_PASSWORD

    return app
