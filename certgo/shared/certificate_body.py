"""Sentence templates for the certificate body paragraph.

The body is built as an ordered list of styled segments; the order is the
sentence itself, so callers must not reorder it.
"""
from __future__ import annotations

from ..constants import (
    CERT_TYPE_APPEARANCE,
    CERT_TYPE_RECOGNITION,
    CPD_SENTINELS,
    NOT_AVAILABLE,
)
from ..models import CertificateRequest
from .certificates_layout import StyledSegment, content_text

PARTICIPATION_PREAMBLE = "for actively participating in the "


def normalize_cert_type(cert_type: str | None) -> str:
    return (cert_type or "").strip().lower()


def has_cpd_units(cpd_units) -> bool:
    if cpd_units is None:
        return False
    value = str(cpd_units).strip()
    return bool(value) and value not in CPD_SENTINELS


def has_duration(duration) -> bool:
    value = str(duration or "").strip()
    return bool(value) and value != NOT_AVAILABLE


def _held_at(
    event_name: str, event_date: str, venue: str
) -> list[StyledSegment]:
    return [
        StyledSegment(event_name, True),
        StyledSegment(" held on ", False),
        StyledSegment(event_date, True),
        StyledSegment(", at ", False),
        StyledSegment(venue, True),
    ]


def _issued(issued_date: str, venue: str) -> list[StyledSegment]:
    return [
        StyledSegment("Issued this ", False),
        StyledSegment(issued_date, True),
        StyledSegment(", at ", False),
        StyledSegment(venue, True),
    ]


def _cpd_suffix(cpd_units) -> list[StyledSegment]:
    if not has_cpd_units(cpd_units):
        return []
    return [StyledSegment(f" ({str(cpd_units).strip()} CPD Units)", True)]


def compose_body(
    request: CertificateRequest,
    formatted_event_date: str,
    formatted_issued_date: str,
) -> list[StyledSegment]:
    cert_type = normalize_cert_type(request.cert_type)
    venue = request.event_venue or ""
    event_name = request.event_name or ""

    if cert_type == CERT_TYPE_APPEARANCE:
        return [
            *_held_at(event_name, formatted_event_date, venue),
            StyledSegment(". ", False),
            *_issued(formatted_issued_date, venue),
            StyledSegment(".", False),
        ]

    if cert_type == CERT_TYPE_RECOGNITION:
        role = request.event_role or request.participant_role or ""
        segments = [
            StyledSegment("has served as ", False),
            StyledSegment(role, True),
            StyledSegment(" during the conduct of ", False),
            *_held_at(event_name, formatted_event_date, venue),
            StyledSegment(". ", False),
            *_issued(formatted_issued_date, venue),
        ]
        suffix = _cpd_suffix(request.cpd_units)
        return segments + (suffix or [StyledSegment(".", False)])

    segments = [
        StyledSegment(PARTICIPATION_PREAMBLE, False),
        *_held_at(event_name, formatted_event_date, venue),
        StyledSegment(". ", False),
    ]
    if has_duration(request.duration):
        segments += [
            StyledSegment("This activity has a total duration of ", False),
            StyledSegment(str(request.duration).strip(), True),
            StyledSegment(". ", False),
        ]
    segments += [
        *_issued(formatted_issued_date, venue),
        StyledSegment(".", False),
        *_cpd_suffix(request.cpd_units),
    ]
    return segments


def plain_text(segments) -> str:
    return content_text(segments)
