import os

from certgo.app import create_app
from certgo.shared.certificates_layout import sanitize_layout_config
from certgo.shared.fonts import load_script_font

from conftest import VERA_BOLD_TTF, VERA_TTF


def test_defaults_derive_from_site_root(tmp_path, monkeypatch):
    monkeypatch.setenv("SITE_ROOT", str(tmp_path))
    monkeypatch.delenv("P12_PASSWORD", raising=False)
    monkeypatch.delenv("CERTIFICATES_DIR", raising=False)
    app = create_app()
    assert app.config["CERTIFICATES_DIR"] == os.path.join(str(tmp_path), "certificates")
    assert app.config["DEFAULT_TEMPLATE_PATH"].endswith("certificate_participation.pdf")
    assert app.config["P12_PASSWORD"] == "password"
    assert app.config["SIGNER_UTC_OFFSET"] == "+08:00"


def test_explicit_config_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("P12_PASSWORD", "from-env")
    app = create_app({"TEMPLATES_DIR": str(tmp_path), "P12_PASSWORD": "explicit"})
    assert app.config["P12_PASSWORD"] == "explicit"
    assert app.config["DEFAULT_TEMPLATE_PATH"] == os.path.join(
        str(tmp_path), "certificate_participation.pdf"
    )


def test_layout_from_environment(monkeypatch):
    monkeypatch.setenv("CERT_LAYOUT", '{"rich_min_size": 9, "padding": 2}')
    app = create_app()
    config = sanitize_layout_config(app.config["CERT_LAYOUT"])
    assert config.rich_min_size == 9
    assert config.padding == 2


def test_bad_layout_json_is_ignored(monkeypatch):
    monkeypatch.setenv("CERT_LAYOUT", "{not json")
    app = create_app()
    assert app.config["CERT_LAYOUT"] == {}


def test_script_font_with_real_bold_face(app):
    app.config["SCRIPT_FONT_BOLD_PATH"] = VERA_BOLD_TTF
    font = load_script_font()
    assert font.bold is not None
    assert not font.fakes_bold(True)


def test_script_font_bad_bold_path_falls_back_to_faux_bold(app, caplog):
    app.config["SCRIPT_FONT_PATH"] = VERA_TTF
    app.config["SCRIPT_FONT_BOLD_PATH"] = "/nowhere/bold.ttf"
    with caplog.at_level("WARNING"):
        font = load_script_font()
    assert font.bold is None
    assert font.fakes_bold(True)
    assert "[CERT-FONT]" in caplog.text
