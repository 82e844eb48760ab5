from __future__ import annotations


class CertgenError(Exception):
    """Base class for certificate pipeline failures."""


class TemplateNotFoundError(CertgenError, FileNotFoundError):
    """Raised when no certificate template, not even the default, is readable."""


class FieldNotFoundWarning(UserWarning):
    """Issued when a template lacks a named form field; the field is skipped."""


class FontEmbedError(CertgenError):
    """Raised when the script font cannot be loaded or registered."""


class DateFormatError(CertgenError, ValueError):
    """Raised when a date value cannot be parsed."""


class CertificateGenerationError(CertgenError):
    """Wraps any unrecoverable failure while rendering a certificate."""


class CredentialNotFoundError(CertgenError, FileNotFoundError):
    """Raised when the PKCS#12 signing credential is missing."""


class CertificateFileNotFoundError(CertgenError, FileNotFoundError):
    """Raised when a certificate PDF to be signed is missing on disk."""


class SigningError(CertgenError):
    """Wraps stamp, placeholder or cryptographic signing failures."""
