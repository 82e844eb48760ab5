CERT_TYPE_PARTICIPATION = "participation"
CERT_TYPE_RECOGNITION = "recognition"
CERT_TYPE_APPEARANCE = "appearance"

CERT_TYPES = (
    CERT_TYPE_PARTICIPATION,
    CERT_TYPE_RECOGNITION,
    CERT_TYPE_APPEARANCE,
)

# Values that mean "no CPD units" on a certificate request
CPD_SENTINELS = frozenset({"N/A", "0", "0.0"})
NOT_AVAILABLE = "N/A"

DATE_PLACEHOLDER = "Date not available"

TEMPLATE_FILENAMES = {
    "participation": "certificate_participation.pdf",
    "recognition_cpd": "certificate_recognition_cpd.pdf",
    "recognition_no_cpd": "certificate_recognition_no_cpd.pdf",
    "appearance": "certificate_appearance.pdf",
}

FIELD_PARTICIPANT_NAME = "PARTICIPANT_NAME"
FIELD_CERTIFICATE_BODY = "CERTIFICATE_BODY"
FIELD_EVENT_ROLE = "EVENT_ROLE"
FIELD_EVENT_NAME = "EVENT_NAME"
FIELD_EVENT_VENUE = "EVENT_VENUE"
FIELD_EVENT_VENUE2 = "EVENT_VENUE2"
FIELD_PARTICIPANT_ROLE = "PARTICIPANT_ROLE"
FIELD_PARTICIPANT_SCHOOL = "PARTICIPANT_SCHOOL"
FIELD_PARTICIPANT_UNIT = "PARTICIPANT_UNIT"
FIELD_EVENT_DATE = "EVENT_DATE"
FIELD_EVENT_DATE2 = "EVENT_DATE2"
FIELD_ISSUED_DATE = "ISSUED_DATE"
FIELD_ISSUED_DATE2 = "ISSUED_DATE2"
FIELD_DURATION = "DURATION"
FIELD_CPD_UNITS = "CPD_UNITS"
FIELD_PRC_NUMBER = "PRC_NUMBER"
FIELD_CERTIFICATE_NUMBER = "CERTIFICATE_NUMBER"
FIELD_CREATED_DATE = "CREATED_DATE"
FIELD_ISSUER_NAME = "ISSUER_NAME"

TEMPLATE_FIELD_NAMES = (
    FIELD_PARTICIPANT_NAME,
    FIELD_CERTIFICATE_BODY,
    FIELD_EVENT_ROLE,
    FIELD_EVENT_NAME,
    FIELD_EVENT_VENUE,
    FIELD_EVENT_VENUE2,
    FIELD_PARTICIPANT_ROLE,
    FIELD_PARTICIPANT_SCHOOL,
    FIELD_PARTICIPANT_UNIT,
    FIELD_EVENT_DATE,
    FIELD_EVENT_DATE2,
    FIELD_ISSUED_DATE,
    FIELD_ISSUED_DATE2,
    FIELD_DURATION,
    FIELD_CPD_UNITS,
    FIELD_PRC_NUMBER,
    FIELD_CERTIFICATE_NUMBER,
    FIELD_CREATED_DATE,
    FIELD_ISSUER_NAME,
)

DEFAULT_SIGNER_NAME_LINES = ("MENDOZA HOMER", "NAPENAS")
DEFAULT_SIGNER_UTC_OFFSET = "+08:00"
SIGNATURE_FIELD_NAME = "Signature1"

# Hours credited for an attendance record with no recorded duration
DEFAULT_ATTENDANCE_HOURS = 8
