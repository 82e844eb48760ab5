import os

import pytest

from certgo.shared.certificates import resolve_template
from certgo.shared.errors import CertgenError, TemplateNotFoundError


def test_participation_uses_its_own_template(app, template_factory):
    path = template_factory("participation")
    resolution = resolve_template("Participation", "N/A")
    assert resolution.path == path
    assert resolution.source == "participation"
    assert resolution.display_name == "certificate_participation.pdf"
    assert resolution.mtime == os.path.getmtime(path)


def test_recognition_without_cpd_prefers_no_cpd_variant(app, template_factory):
    template_factory("recognition_cpd")
    no_cpd = template_factory("recognition_no_cpd")
    resolution = resolve_template("Recognition", "0")
    assert resolution.path == no_cpd
    assert resolution.source == "no-cpd"
    assert os.path.exists(resolution.path)


def test_recognition_without_cpd_falls_back_to_cpd_variant(app, template_factory):
    cpd = template_factory("recognition_cpd")
    resolution = resolve_template("recognition", "0")
    assert resolution.path == cpd
    assert resolution.source == "cpd"
    assert os.path.exists(resolution.path)


def test_recognition_with_cpd_uses_cpd_variant(app, template_factory):
    template_factory("recognition_no_cpd")
    cpd = template_factory("recognition_cpd")
    resolution = resolve_template("Recognition", "3.0")
    assert resolution.path == cpd
    assert resolution.has_cpd


def test_missing_variant_falls_back_to_default(app, template_factory, caplog):
    default = template_factory("participation")
    with caplog.at_level("INFO"):
        resolution = resolve_template("Appearance", None)
    assert resolution.path == default
    assert resolution.source == "default"
    assert resolution.cert_type == "appearance"
    assert "[cert-template]" in caplog.text


def test_unknown_type_resolves_as_participation(app, template_factory):
    default = template_factory("participation")
    resolution = resolve_template("Seminar")
    assert resolution.cert_type == "participation"
    assert resolution.path == default


def test_nothing_readable_raises_with_attempted_paths(app, templates_dir):
    with pytest.raises(TemplateNotFoundError) as excinfo:
        resolve_template("Recognition", "N/A")
    message = str(excinfo.value)
    assert "certificate_recognition_no_cpd.pdf" in message
    assert "certificate_recognition_cpd.pdf" in message
    assert app.config["DEFAULT_TEMPLATE_PATH"] in message
    assert isinstance(excinfo.value, CertgenError)
    assert isinstance(excinfo.value, FileNotFoundError)
