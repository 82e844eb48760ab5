import json

import click
from flask import current_app
from flask.cli import FlaskGroup

from certgo.app import create_app
from certgo.models import CertificateRecord, CertificateRequest
from certgo.services.signatures import bulk_sign, sign_certificate
from certgo.shared.certificates import (
    generate_certificate_number,
    render_certificate,
    render_for_event,
)
from certgo.shared.credentials import DEV_PASSWORD, generate_dev_credential
from certgo.shared.errors import CertgenError


def create_certgo_app():
    return create_app()


cli = FlaskGroup(create_app=create_certgo_app)


def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)


def _request_from(data: dict) -> CertificateRequest:
    if not (data.get("certificate_number") or data.get("certificateNumber")):
        data = {**data, "certificate_number": generate_certificate_number()}
    return CertificateRequest.from_mapping(data)


@cli.command("gen_cert")
@click.option("--data", "data_path", required=True, type=click.Path(exists=True))
def gen_cert(data_path: str):
    """Render one certificate from a JSON request file."""
    request = _request_from(_load_json(data_path))
    try:
        path = render_certificate(request)
    except CertgenError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)
    click.echo(path)


@cli.command("gen_event_certs")
@click.option("--data", "data_path", required=True, type=click.Path(exists=True))
def gen_event_certs(data_path: str):
    """Render every certificate in a JSON list of requests."""
    requests = [_request_from(item) for item in _load_json(data_path)]
    count, failed, paths = render_for_event(requests)
    for path in paths:
        click.echo(path)
    summary = f"generated={count} failed={failed}"
    click.echo(summary)
    current_app.logger.info("[CERT] event batch %s", summary)


@cli.command("sign_cert")
@click.option("--number", "certificate_number", required=True)
@click.option("--name", "participant_name", required=True)
@click.option("--id", "record_id", default=None)
def sign_cert(certificate_number: str, participant_name: str, record_id):
    """Sign a rendered certificate in place."""
    record = CertificateRecord(
        id=record_id or certificate_number,
        certificate_number=certificate_number,
        participant_name=participant_name,
    )
    try:
        result = sign_certificate(record)
    except CertgenError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(1)
    click.echo(result["path"])


@cli.command("bulk_sign")
@click.option("--data", "data_path", required=True, type=click.Path(exists=True))
def bulk_sign_cmd(data_path: str):
    """Sign every certificate in a JSON list of records."""
    records = [CertificateRecord.from_mapping(item) for item in _load_json(data_path)]
    result = bulk_sign(records)
    for error in result.errors:
        click.echo(error, err=True)
    click.echo(f"signed={result.success_count} failed={result.fail_count}")


@cli.command("gen_dev_credential")
@click.option("--out", "out_path", required=True)
@click.option("--password", default=DEV_PASSWORD, show_default=True)
def gen_dev_credential(out_path: str, password: str):
    """Write a self-signed PKCS#12 credential for local signing."""
    click.echo(generate_dev_credential(out_path, password))


if __name__ == "__main__":
    cli()
