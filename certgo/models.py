from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Mapping, Union

DateLike = Union[date, datetime, str, None]


def _snake_case(key: str) -> str:
    out: list[str] = []
    for char in key:
        if char.isupper():
            out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out).lstrip("_")


@dataclass(frozen=True)
class CertificateRequest:
    """Everything needed to render one certificate. Never mutated by the renderer."""

    certificate_number: str
    participant_name: str
    cert_type: str = "Participation"
    participant_role: str = ""
    event_role: str | None = None
    participant_school: str = ""
    participant_unit: str = ""
    event_name: str = ""
    event_venue: str = ""
    event_date: DateLike = None
    issued_date: DateLike = None
    created_at: DateLike = None
    duration: str | None = None
    cpd_units: str | None = None
    prc_number: str | None = None
    issuer_name: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CertificateRequest":
        """Accept camelCase (API payloads) or snake_case keys; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = key if key in known else _snake_case(key)
            if name in known:
                values[name] = value
        if "cpd_units" in values and values["cpd_units"] is not None:
            values["cpd_units"] = str(values["cpd_units"])
        return cls(**values)


@dataclass(frozen=True)
class CertificateRecord:
    """A stored certificate as seen by the signing step."""

    id: int | str
    certificate_number: str
    participant_name: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CertificateRecord":
        return cls(
            id=data.get("id"),
            certificate_number=data.get("certificate_number")
            or data.get("certificateNumber"),
            participant_name=data.get("participant_name")
            or data.get("participantName")
            or "",
        )
