import json
import os

import pytest
from pyhanko.pdf_utils.reader import PdfFileReader

from manage import bulk_sign_cmd, gen_cert, gen_dev_credential, gen_event_certs, sign_cert


@pytest.fixture
def runner(app):
    for command in (gen_cert, gen_event_certs, sign_cert, bulk_sign_cmd, gen_dev_credential):
        app.cli.add_command(command)
    return app.test_cli_runner()


def _write_json(path, payload):
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


REQUEST = {
    "certificateNumber": "CERT-100-001",
    "participantName": "Ana Reyes",
    "certType": "Participation",
    "eventName": "Science Fair",
    "eventVenue": "Gym",
    "eventDate": "2024-03-15",
    "issuedDate": "2024-03-16",
    "duration": "4h",
}


def test_gen_cert_prints_path(runner, template_factory, tmp_path, app):
    template_factory("participation")
    res = runner.invoke(args=["gen_cert", "--data", _write_json(tmp_path / "req.json", REQUEST)])
    assert res.exit_code == 0, res.output
    path = res.output.strip()
    assert path.endswith("Certificate_CERT-100-001_Ana_Reyes.pdf")
    assert os.path.isfile(path)


def test_gen_cert_reports_missing_template(runner, tmp_path):
    res = runner.invoke(args=["gen_cert", "--data", _write_json(tmp_path / "req.json", REQUEST)])
    assert res.exit_code == 1
    assert "template not found" in res.output.lower()


def test_gen_event_certs_summary(runner, template_factory, tmp_path):
    template_factory("participation")
    second = dict(REQUEST, certificateNumber="CERT-100-002", participantName="Ben Cruz")
    data = _write_json(tmp_path / "reqs.json", [REQUEST, second])
    res = runner.invoke(args=["gen_event_certs", "--data", data])
    assert res.exit_code == 0
    assert "generated=2 failed=0" in res.output


def test_gen_event_certs_assigns_missing_numbers(runner, template_factory, tmp_path):
    template_factory("participation")
    unnumbered = {k: v for k, v in REQUEST.items() if k != "certificateNumber"}
    res = runner.invoke(args=["gen_event_certs", "--data", _write_json(tmp_path / "r.json", [unnumbered])])
    assert "generated=1" in res.output
    assert "Certificate_CERT-" in res.output


def test_sign_and_bulk_sign(runner, template_factory, tmp_path, app):
    template_factory("participation")
    res = runner.invoke(args=["gen_cert", "--data", _write_json(tmp_path / "req.json", REQUEST)])
    path = res.output.strip()

    res = runner.invoke(args=["sign_cert", "--number", "CERT-100-001", "--name", "Ana Reyes"])
    assert res.exit_code == 0, res.output
    assert res.output.strip() == path
    with open(path, "rb") as fh:
        assert len(PdfFileReader(fh).embedded_signatures) == 1

    second = dict(REQUEST, certificateNumber="CERT-100-002", participantName="Ben Cruz")
    runner.invoke(args=["gen_cert", "--data", _write_json(tmp_path / "second.json", second)])
    records = [
        {"id": 1, "certificateNumber": "CERT-100-002", "participantName": "Ben Cruz"},
        {"id": 2, "certificateNumber": "CERT-404", "participantName": "Nobody"},
    ]
    res = runner.invoke(args=["bulk_sign", "--data", _write_json(tmp_path / "recs.json", records)])
    assert res.exit_code == 0
    assert "signed=1 failed=1" in res.output
    assert "File missing for cert 2" in res.output


def test_sign_cert_missing_file(runner):
    res = runner.invoke(args=["sign_cert", "--number", "CERT-0", "--name", "Nobody"])
    assert res.exit_code == 1
    assert "Certificate_CERT-0_Nobody.pdf" in res.output


def test_gen_dev_credential(runner, tmp_path):
    out = tmp_path / "keys" / "dev.p12"
    res = runner.invoke(args=["gen_dev_credential", "--out", str(out), "--password", "pw"])
    assert res.exit_code == 0
    assert out.is_file()
    assert out.stat().st_size > 0
