from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from io import BytesIO
from typing import Iterable, Sequence

from flask import current_app
from PIL import Image
from PyPDF2 import PdfReader
from pyhanko.pdf_utils.incremental_writer import IncrementalPdfFileWriter
from pyhanko.sign import signers
from pyhanko.sign.fields import SigFieldSpec, append_signature_field
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..constants import (
    DEFAULT_SIGNER_NAME_LINES,
    DEFAULT_SIGNER_UTC_OFFSET,
    SIGNATURE_FIELD_NAME,
)
from ..models import CertificateRecord
from ..shared.errors import (
    CertificateFileNotFoundError,
    CredentialNotFoundError,
    SigningError,
)
from ..shared.pdf_forms import write_pdf
from ..shared.storage import certificate_output_path, write_atomic

STAMP_Y = 80
STAMP_IMAGE_SCALE = 0.13
STAMP_FONT_SIZE = 8.5
STAMP_LINE_SPACING = 11
STAMP_TOP_OFFSET = 30

DEFAULT_REASON = "CertiGo Digital Signature"
DEFAULT_LOCATION = "Imus, Cavite"
DEFAULT_CONTACT = "admin@certigo.com"
DEFAULT_SIGNER_LABEL = "CertiGo Authority"


def parse_utc_offset(offset: str) -> timezone:
    """'+08:00' -> timezone(timedelta(hours=8))."""
    text = (offset or "").strip()
    try:
        sign = -1 if text.startswith("-") else 1
        hours, _, minutes = text.lstrip("+-").partition(":")
        delta = timedelta(hours=int(hours), minutes=int(minutes or 0))
    except ValueError as exc:
        raise ValueError(f"invalid UTC offset {offset!r}") from exc
    return timezone(sign * delta)


@dataclass(frozen=True)
class SignatureAsset:
    """Visible stamp identity and signature metadata; read fresh for every signing."""

    image_path: str | None = None
    name_lines: tuple[str, ...] = DEFAULT_SIGNER_NAME_LINES
    utc_offset: str = DEFAULT_SIGNER_UTC_OFFSET
    reason: str = DEFAULT_REASON
    location: str = DEFAULT_LOCATION
    contact: str = DEFAULT_CONTACT
    name: str = DEFAULT_SIGNER_LABEL

    @classmethod
    def from_config(cls) -> "SignatureAsset":
        cfg = current_app.config
        lines = cfg.get("SIGNER_NAME_LINES") or DEFAULT_SIGNER_NAME_LINES
        if isinstance(lines, str):
            lines = [part.strip() for part in lines.split(",") if part.strip()]
        return cls(
            image_path=cfg.get("SIGNATURE_IMAGE_PATH"),
            name_lines=tuple(lines),
            utc_offset=cfg.get("SIGNER_UTC_OFFSET") or DEFAULT_SIGNER_UTC_OFFSET,
            reason=cfg.get("SIGNATURE_REASON") or DEFAULT_REASON,
            location=cfg.get("SIGNATURE_LOCATION") or DEFAULT_LOCATION,
            contact=cfg.get("SIGNATURE_CONTACT") or DEFAULT_CONTACT,
            name=cfg.get("SIGNATURE_NAME") or DEFAULT_SIGNER_LABEL,
        )


def stamp_lines(asset: SignatureAsset, now: datetime) -> list[str]:
    return [
        "Digitally signed by",
        *asset.name_lines,
        f"Date: {now.strftime('%Y.%m.%d')}",
        f"{now.strftime('%H:%M:%S')} {asset.utc_offset}",
    ]


def _draw_stamp(pdf_bytes: bytes, asset: SignatureAsset, now: datetime) -> bytes:
    reader = PdfReader(BytesIO(pdf_bytes))
    first_page = reader.pages[0]
    width = float(first_page.mediabox.width)
    height = float(first_page.mediabox.height)
    center_x = width / 2

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(width, height))
    if asset.image_path and os.path.isfile(asset.image_path):
        with Image.open(asset.image_path) as img:
            img_w = img.width * STAMP_IMAGE_SCALE
            img_h = img.height * STAMP_IMAGE_SCALE
        c.drawImage(
            ImageReader(asset.image_path),
            center_x - img_w - 5,
            STAMP_Y - img_h / 2 + 15,
            width=img_w,
            height=img_h,
            mask="auto",
        )
    bold_indexes = range(1, 1 + len(asset.name_lines))
    for index, line in enumerate(stamp_lines(asset, now)):
        font = "Helvetica-Bold" if index in bold_indexes else "Helvetica"
        c.setFont(font, STAMP_FONT_SIZE)
        c.setFillGray(0)
        c.drawString(
            center_x + 5,
            STAMP_Y + STAMP_TOP_OFFSET - index * STAMP_LINE_SPACING,
            line,
        )
    c.save()
    buffer.seek(0)
    first_page.merge_page(PdfReader(buffer).pages[0])
    return write_pdf(reader.pages)


def _load_signer(credential_path: str, credential_password: str | None):
    password = (credential_password or "").encode("utf-8")
    try:
        signer = signers.SimpleSigner.load_pkcs12(
            pfx_file=credential_path, passphrase=password
        )
    except Exception as exc:
        raise SigningError(f"Could not load credential {credential_path}: {exc}") from exc
    if signer is None:
        raise SigningError(
            f"Could not load credential {credential_path}: wrong passphrase or corrupt file"
        )
    return signer


def _add_signature_placeholder(pdf_bytes: bytes) -> IncrementalPdfFileWriter:
    writer = IncrementalPdfFileWriter(BytesIO(pdf_bytes), strict=False)
    append_signature_field(writer, SigFieldSpec(sig_field_name=SIGNATURE_FIELD_NAME))
    return writer


def _apply_signature(
    writer: IncrementalPdfFileWriter, signer, asset: SignatureAsset
) -> bytes:
    meta = signers.PdfSignatureMetadata(
        field_name=SIGNATURE_FIELD_NAME,
        reason=asset.reason,
        location=asset.location,
        contact_info=asset.contact,
        name=asset.name,
    )
    out = signers.sign_pdf(writer, meta, signer=signer)
    return out.getvalue()


def sign_pdf(
    pdf_bytes: bytes,
    credential_path: str,
    credential_password: str | None,
    *,
    asset: SignatureAsset | None = None,
    now: datetime | None = None,
) -> bytes:
    """Stamp the first page, then sign the whole document with a PKCS#12 credential.

    The visible stamp is drawn before signing so the signature covers it.
    A missing credential file raises ``CredentialNotFoundError``; every other
    failure surfaces as ``SigningError`` chained to its cause.
    """
    if not credential_path or not os.path.isfile(credential_path):
        raise CredentialNotFoundError(f"Certificate file not found at: {credential_path}")
    asset = asset or SignatureAsset.from_config()
    try:
        now = now or datetime.now(parse_utc_offset(asset.utc_offset))
        stamped = _draw_stamp(pdf_bytes, asset, now)
    except Exception as exc:
        raise SigningError(f"Could not stamp PDF: {exc}") from exc
    signer = _load_signer(credential_path, credential_password)
    try:
        writer = _add_signature_placeholder(stamped)
        return _apply_signature(writer, signer, asset)
    except Exception as exc:
        raise SigningError(f"Could not sign PDF: {exc}") from exc


def sign_certificate(record: CertificateRecord) -> dict:
    """Sign a rendered certificate in place and return a summary of the result."""
    path = certificate_output_path(record.certificate_number, record.participant_name)
    if not os.path.isfile(path):
        raise CertificateFileNotFoundError(f"Certificate PDF not found: {path}")
    with open(path, "rb") as fh:
        pdf_bytes = fh.read()
    signed = sign_pdf(
        pdf_bytes,
        current_app.config.get("P12_PATH"),
        current_app.config.get("P12_PASSWORD"),
    )
    write_atomic(path, signed)
    os.chmod(path, 0o644)
    current_app.logger.info(
        "[SIGN] cert=%s number=%s path=%s", record.id, record.certificate_number, path
    )
    return {
        "id": record.id,
        "certificate_number": record.certificate_number,
        "path": path,
    }


@dataclass
class BulkSignResult:
    success_count: int = 0
    fail_count: int = 0
    signed: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.fail_count


def bulk_sign(records: Iterable[CertificateRecord] | Sequence[CertificateRecord]) -> BulkSignResult:
    """Sign each certificate in turn; one failure never stops the batch."""
    result = BulkSignResult()
    for record in records:
        try:
            result.signed.append(sign_certificate(record))
            result.success_count += 1
        except CertificateFileNotFoundError:
            result.fail_count += 1
            result.errors.append(f"File missing for cert {record.id}")
            current_app.logger.warning(
                "[SIGN-FAIL] cert=%s number=%s file missing",
                record.id,
                record.certificate_number,
            )
        except Exception as exc:
            result.fail_count += 1
            result.errors.append(f"Failed to sign cert {record.id}: {exc}")
            current_app.logger.exception(
                "[SIGN-FAIL] cert=%s number=%s", record.id, record.certificate_number
            )
    current_app.logger.info(
        "[SIGN] bulk done success=%s failed=%s",
        result.success_count,
        result.fail_count,
    )
    return result
