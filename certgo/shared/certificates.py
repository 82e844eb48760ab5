from __future__ import annotations

import os
import secrets
import warnings
from datetime import date, datetime, time
from typing import Any, Iterable, Mapping, NamedTuple

from flask import current_app
from PyPDF2 import PdfReader

from ..constants import (
    CERT_TYPE_PARTICIPATION,
    CERT_TYPE_RECOGNITION,
    CERT_TYPES,
    DATE_PLACEHOLDER,
    FIELD_CERTIFICATE_BODY,
    FIELD_CERTIFICATE_NUMBER,
    FIELD_CPD_UNITS,
    FIELD_CREATED_DATE,
    FIELD_DURATION,
    FIELD_EVENT_DATE,
    FIELD_EVENT_DATE2,
    FIELD_EVENT_NAME,
    FIELD_EVENT_ROLE,
    FIELD_EVENT_VENUE,
    FIELD_EVENT_VENUE2,
    FIELD_ISSUED_DATE,
    FIELD_ISSUED_DATE2,
    FIELD_ISSUER_NAME,
    FIELD_PARTICIPANT_NAME,
    FIELD_PARTICIPANT_ROLE,
    FIELD_PARTICIPANT_SCHOOL,
    FIELD_PARTICIPANT_UNIT,
    FIELD_PRC_NUMBER,
    NOT_AVAILABLE,
    TEMPLATE_FILENAMES,
)
from ..models import CertificateRequest, DateLike
from .certificate_body import (
    compose_body,
    has_cpd_units,
    normalize_cert_type,
    plain_text,
)
from .certificates_layout import (
    MODE_PLAIN,
    MODE_RICH,
    MODE_WRAP,
    Content,
    FontSpec,
    LayoutConfig,
    draw,
    layout,
    sanitize_layout_config,
)
from .durations import calculate_total_duration
from .errors import (
    CertgenError,
    CertificateGenerationError,
    DateFormatError,
    FieldNotFoundWarning,
    FontEmbedError,
    TemplateNotFoundError,
)
from .fonts import HELVETICA, load_script_font
from .pdf_forms import PageOverlay, TemplateForm, write_pdf
from .storage import certificate_output_path, write_atomic

EVENT_DATE_FORMAT = "%B %d, %Y"
CREATED_DATE_FORMAT = "%B %d, %Y at %I:%M %p"


class TemplateResolution(NamedTuple):
    display_name: str
    path: str
    source: str
    cert_type: str
    has_cpd: bool
    mtime: float


def _template_candidates(cert_type: str, has_cpd: bool) -> list[tuple[str, str]]:
    templates_dir = current_app.config["TEMPLATES_DIR"]
    if cert_type == CERT_TYPE_RECOGNITION:
        if has_cpd:
            names = [("cpd", TEMPLATE_FILENAMES["recognition_cpd"])]
        else:
            names = [
                ("no-cpd", TEMPLATE_FILENAMES["recognition_no_cpd"]),
                ("cpd", TEMPLATE_FILENAMES["recognition_cpd"]),
            ]
    else:
        names = [(cert_type, TEMPLATE_FILENAMES[cert_type])]
    candidates = [(source, os.path.join(templates_dir, name)) for source, name in names]
    candidates.append(("default", current_app.config["DEFAULT_TEMPLATE_PATH"]))
    return candidates


def resolve_template(cert_type: str | None, cpd_units: Any = None) -> TemplateResolution:
    """Pick the template for a certificate type; the first readable candidate wins."""
    normalized = normalize_cert_type(cert_type)
    if normalized not in CERT_TYPES:
        normalized = CERT_TYPE_PARTICIPATION
    has_cpd = has_cpd_units(cpd_units)
    candidates = _template_candidates(normalized, has_cpd)
    for index, (source, path) in enumerate(candidates):
        if not (os.path.isfile(path) and os.access(path, os.R_OK)):
            continue
        if index:
            current_app.logger.info(
                "[cert-template] %s missing; falling back source=%s",
                candidates[0][1],
                source,
            )
        resolution = TemplateResolution(
            display_name=os.path.basename(path),
            path=path,
            source=source,
            cert_type=normalized,
            has_cpd=has_cpd,
            mtime=os.path.getmtime(path),
        )
        _log_template_resolution(resolution)
        return resolution
    attempted = ", ".join(path for _, path in candidates)
    raise TemplateNotFoundError(
        f"Certificate template not found for type={normalized} cpd={has_cpd}; "
        f"attempted={attempted}"
    )


def _log_template_resolution(resolution: TemplateResolution) -> None:
    timestamp = datetime.fromtimestamp(resolution.mtime).strftime("%Y-%m-%d %H:%M")
    current_app.logger.info(
        "[cert-template] using path=%s type=%s cpd=%s mtime=%s source=%s",
        resolution.path,
        resolution.cert_type,
        resolution.has_cpd,
        timestamp,
        resolution.source,
    )


def parse_date(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    text = str(value or "").strip()
    if not text:
        raise DateFormatError("date is missing")
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DateFormatError(f"unparseable date {value!r}") from exc


def _format_date(value: DateLike, pattern: str, label: str) -> str:
    try:
        return parse_date(value).strftime(pattern)
    except DateFormatError as exc:
        current_app.logger.warning("[CERT-DATE] %s: %s", label, exc)
        return DATE_PLACEHOLDER


def format_event_date(value: DateLike) -> str:
    return _format_date(value, EVENT_DATE_FORMAT, "event date")


def format_issued_date(value: DateLike) -> str:
    return _format_date(value, EVENT_DATE_FORMAT, "issued date")


def format_created_date(value: DateLike) -> str:
    return _format_date(value, CREATED_DATE_FORMAT, "created date")


class FieldPlan(NamedTuple):
    name: str
    content: Content
    size: float
    bold: bool = False
    script: bool = False
    mode: str = MODE_PLAIN


def build_field_plan(
    request: CertificateRequest,
    event_date: str,
    issued_date: str,
    created_date: str,
) -> list[FieldPlan]:
    venue = request.event_venue or ""
    plan = [
        FieldPlan(
            FIELD_PARTICIPANT_NAME,
            (request.participant_name or "").upper(),
            22,
            bold=True,
            script=True,
        ),
        FieldPlan(
            FIELD_CERTIFICATE_BODY,
            compose_body(request, event_date, issued_date),
            12,
            script=True,
            mode=MODE_RICH,
        ),
    ]
    if normalize_cert_type(request.cert_type) == CERT_TYPE_RECOGNITION:
        plan.append(
            FieldPlan(
                FIELD_EVENT_ROLE,
                request.event_role or request.participant_role or "",
                12,
                bold=True,
            )
        )
    plan += [
        FieldPlan(FIELD_EVENT_NAME, request.event_name or "", 12, script=True, mode=MODE_WRAP),
        FieldPlan(FIELD_EVENT_VENUE, venue, 10),
        FieldPlan(FIELD_EVENT_VENUE2, venue, 10),
        FieldPlan(FIELD_PARTICIPANT_ROLE, request.participant_role or "", 10),
        FieldPlan(FIELD_PARTICIPANT_SCHOOL, request.participant_school or "", 10),
        FieldPlan(FIELD_PARTICIPANT_UNIT, request.participant_unit or "", 10),
        FieldPlan(FIELD_EVENT_DATE, event_date, 10),
        FieldPlan(FIELD_EVENT_DATE2, event_date, 10),
        FieldPlan(FIELD_ISSUED_DATE, issued_date, 10),
        FieldPlan(FIELD_ISSUED_DATE2, issued_date, 10),
        FieldPlan(FIELD_DURATION, request.duration or NOT_AVAILABLE, 10),
        FieldPlan(FIELD_CERTIFICATE_NUMBER, request.certificate_number, 10),
        FieldPlan(FIELD_CREATED_DATE, created_date, 9),
        FieldPlan(FIELD_ISSUER_NAME, request.issuer_name or "", 10, bold=True),
    ]
    if has_cpd_units(request.cpd_units):
        plan.append(FieldPlan(FIELD_CPD_UNITS, str(request.cpd_units).strip(), 10))
    prc = (request.prc_number or "").strip()
    if prc and prc != NOT_AVAILABLE:
        plan.append(FieldPlan(FIELD_PRC_NUMBER, prc, 10))
    return plan


def _apply_field(
    form: TemplateForm,
    overlay: PageOverlay,
    plan: FieldPlan,
    script_font: FontSpec | None,
    config: LayoutConfig,
) -> None:
    if plan.name not in form:
        current_app.logger.warning(
            "[CERT-FIELD] field=%s missing from template; skipped", plan.name
        )
        warnings.warn(
            f"Template field {plan.name} not found; skipped",
            FieldNotFoundWarning,
            stacklevel=3,
        )
        return
    font = script_font if plan.script else HELVETICA
    if font is None:
        form.set_text(
            plan.name, plain_text(plan.content), plan.size, multiline=plan.mode != MODE_PLAIN
        )
        return
    for form_field in form.widgets(plan.name):
        result = layout(
            form_field.rect,
            plan.content,
            font,
            form_field.alignment,
            plan.mode,
            size=plan.size,
            bold=plan.bold,
            config=config,
        )
        draw(overlay.canvas(form_field.page_index), result, font, config)
    form.clear(plan.name)


def _render_pdf(request: CertificateRequest) -> bytes:
    resolution = resolve_template(request.cert_type, request.cpd_units)
    try:
        reader = PdfReader(resolution.path)
        form = TemplateForm(reader)
    except Exception as exc:
        raise CertificateGenerationError(
            f"Could not load template {resolution.path}: {exc}"
        ) from exc

    try:
        script_font = load_script_font()
    except FontEmbedError as exc:
        current_app.logger.warning(
            "[CERT-FONT] %s; using native field text for script fields", exc
        )
        script_font = None

    event_date = format_event_date(request.event_date)
    issued_date = format_issued_date(request.issued_date)
    created_date = format_created_date(request.created_at)
    config = sanitize_layout_config(current_app.config.get("CERT_LAYOUT"))

    overlay = PageOverlay(reader)
    for plan in build_field_plan(request, event_date, issued_date, created_date):
        _apply_field(form, overlay, plan, script_font, config)
    form.flatten(overlay, config)
    return write_pdf(reader.pages)


def render_certificate_bytes(request: CertificateRequest) -> bytes:
    """Render a certificate and return the PDF bytes without touching disk."""
    try:
        return _render_pdf(request)
    except CertgenError:
        raise
    except Exception as exc:
        raise CertificateGenerationError(
            f"Certificate generation failed: {exc}"
        ) from exc


def render_certificate(request: CertificateRequest) -> str:
    """Render a certificate to CERTIFICATES_DIR and return the written path."""
    pdf_bytes = render_certificate_bytes(request)
    full_path = certificate_output_path(
        request.certificate_number, request.participant_name
    )
    write_atomic(full_path, pdf_bytes)
    os.chmod(full_path, 0o644)
    current_app.logger.info(
        "[CERT] number=%s type=%s path=%s",
        request.certificate_number,
        request.cert_type,
        full_path,
    )
    return full_path


def render_for_event(
    requests: Iterable[CertificateRequest],
) -> tuple[int, int, list[str]]:
    count = 0
    failed = 0
    paths: list[str] = []
    for request in requests:
        try:
            paths.append(render_certificate(request))
            count += 1
        except Exception:
            failed += 1
            current_app.logger.exception(
                "[CERT-FAIL] number=%s participant=%s",
                request.certificate_number,
                request.participant_name,
            )
    return count, failed, paths


def generate_certificate_number(
    now: datetime | None = None, rand: int | None = None
) -> str:
    now = now or datetime.now()
    if rand is None:
        rand = secrets.randbelow(1000)
    return f"CERT-{int(now.timestamp() * 1000)}-{rand:03d}"


def _pick(data: Mapping[str, Any] | None, *keys: str) -> Any:
    if not data:
        return None
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def prepare_certificate_data(
    certificate: Mapping[str, Any],
    user: Mapping[str, Any],
    event: Mapping[str, Any],
    issuer: Mapping[str, Any] | None = None,
    attendance: Iterable[Mapping[str, Any]] | None = None,
) -> CertificateRequest:
    """Map stored certificate, participant, event and issuer records to a request.

    When the certificate carries no duration, it is totalled from the
    participant's attendance records.
    """
    cpd_units = _pick(certificate, "cpd_units", "cpdUnits") or _pick(
        event, "cpd_units", "cpdUnits"
    )
    duration = _pick(certificate, "duration")
    if duration is None and attendance is not None:
        duration = calculate_total_duration(attendance)
    return CertificateRequest(
        certificate_number=_pick(certificate, "certificate_number", "certificateNumber"),
        participant_name=_pick(user, "full_name", "fullName") or "",
        cert_type=_pick(certificate, "cert_type", "certType")
        or _pick(event, "cert_type", "certType")
        or "Participation",
        participant_role=_pick(user, "position", "role") or "",
        event_role=_pick(certificate, "event_role", "eventRole"),
        participant_school=_pick(user, "school", "school_name", "schoolName") or "",
        participant_unit=_pick(user, "unit", "unit_name", "unitName") or "",
        event_name=_pick(event, "name", "event_name", "eventName") or "",
        event_venue=_pick(event, "venue", "location") or "",
        event_date=_pick(event, "date", "event_date", "eventDate"),
        issued_date=_pick(certificate, "issued_at", "issuedAt"),
        created_at=_pick(certificate, "created_at", "createdAt"),
        duration=duration or NOT_AVAILABLE,
        cpd_units=None if cpd_units is None else str(cpd_units),
        prc_number=_pick(user, "prc_number", "prcNumber") or NOT_AVAILABLE,
        issuer_name=_pick(issuer, "full_name", "fullName") or "",
    )
