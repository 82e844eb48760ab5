"""Self-signed PKCS#12 credentials for local signing and tests.

Not for production: the certificate is its own issuer.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .storage import write_atomic

DEV_COMMON_NAME = "CertiGo Development Authority"
DEV_PASSWORD = "password"


def _dev_subject(common_name: str) -> x509.Name:
    return x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.COUNTRY_NAME, "PH"),
            x509.NameAttribute(NameOID.STATE_OR_PROVINCE_NAME, "Metro Manila"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "CertiGo Developers"),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, "IT"),
        ]
    )


def build_dev_credential(
    password: str = DEV_PASSWORD,
    *,
    common_name: str = DEV_COMMON_NAME,
    valid_days: int = 365,
) -> bytes:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = _dev_subject(common_name)
    not_before = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=valid_days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=True,
                key_encipherment=True,
                data_encipherment=True,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [
                    ExtendedKeyUsageOID.CLIENT_AUTH,
                    ExtendedKeyUsageOID.CODE_SIGNING,
                    ExtendedKeyUsageOID.EMAIL_PROTECTION,
                ]
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        name=common_name.encode("utf-8"),
        key=key,
        cert=cert,
        cas=None,
        encryption_algorithm=serialization.BestAvailableEncryption(
            password.encode("utf-8")
        ),
    )


def generate_dev_credential(
    path: str,
    password: str = DEV_PASSWORD,
    *,
    common_name: str = DEV_COMMON_NAME,
    valid_days: int = 365,
) -> str:
    """Write a self-signed RSA-2048 PKCS#12 file to ``path`` and return the path."""
    data = build_dev_credential(
        password, common_name=common_name, valid_days=valid_days
    )
    write_atomic(path, data)
    return path
