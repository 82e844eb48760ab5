import os
import re
import tempfile

from flask import current_app


def ensure_dir(path: str) -> None:
    """Create directory if missing (mkdir -p equivalent)."""
    os.makedirs(path, exist_ok=True)


def write_atomic(path: str, data, mode: str = "wb") -> None:
    """Write data to a temporary file then atomically rename to target path."""
    dir_path = os.path.dirname(os.path.abspath(path))
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path)
    try:
        with os.fdopen(fd, mode) as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def sanitize_participant_name(name: str | None) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name or "")


def certificate_filename(certificate_number: str, participant_name: str | None) -> str:
    return f"Certificate_{certificate_number}_{sanitize_participant_name(participant_name)}.pdf"


def certificate_output_path(
    certificate_number: str, participant_name: str | None
) -> str:
    cert_root = current_app.config["CERTIFICATES_DIR"]
    return os.path.join(
        cert_root, certificate_filename(certificate_number, participant_name)
    )
