import os
import pathlib
import sys

import pytest
import reportlab
from PIL import Image
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from certgo.app import create_app
from certgo.constants import TEMPLATE_FIELD_NAMES, TEMPLATE_FILENAMES
from certgo.models import CertificateRequest
from certgo.shared.credentials import build_dev_credential

VERA_TTF = os.path.join(os.path.dirname(reportlab.__file__), "fonts", "Vera.ttf")
VERA_BOLD_TTF = os.path.join(os.path.dirname(reportlab.__file__), "fonts", "VeraBd.ttf")
CREDENTIAL_PASSWORD = "s3cret"

# x, y, width, height on a landscape A4 page
FIELD_BOXES = {
    "PARTICIPANT_NAME": (121, 420, 600, 50),
    "CERTIFICATE_BODY": (121, 310, 600, 100),
    "EVENT_NAME": (121, 270, 600, 30),
}


def _field_boxes(names):
    boxes = {}
    row = 0
    for name in names:
        if name in FIELD_BOXES:
            boxes[name] = FIELD_BOXES[name]
            continue
        column, line = divmod(row, 9)
        boxes[name] = (40 + column * 400, 235 - line * 24, 360, 20)
        row += 1
    return boxes


def build_template(path, names=TEMPLATE_FIELD_NAMES, pagesize=None, values=None, extra_widgets=()):
    """Write a one-page PDF with an AcroForm text field per name.

    values prefills fields by name; extra_widgets adds (name, box) widgets,
    which may repeat a name already placed.
    """
    pagesize = pagesize or landscape(A4)
    values = values or {}
    os.makedirs(os.path.dirname(str(path)), exist_ok=True)
    c = canvas.Canvas(str(path), pagesize=pagesize)
    c.setFont("Helvetica", 28)
    c.drawCentredString(pagesize[0] / 2, pagesize[1] - 60, "CERTIFICATE")
    widgets = list(_field_boxes(names).items()) + list(extra_widgets)
    for name, (x, y, width, height) in widgets:
        c.acroForm.textfield(
            name=name,
            value=values.get(name, ""),
            x=x,
            y=y,
            width=width,
            height=height,
            borderWidth=0,
            fontSize=10,
            maxlen=None,
        )
    c.showPage()
    c.save()
    return str(path)


@pytest.fixture
def templates_dir(tmp_path):
    return tmp_path / "templates"


@pytest.fixture
def template_factory(templates_dir):
    def make(kind="participation", names=TEMPLATE_FIELD_NAMES, **kwargs):
        return build_template(templates_dir / TEMPLATE_FILENAMES[kind], names, **kwargs)

    return make


@pytest.fixture(scope="session")
def credential_path(tmp_path_factory):
    path = tmp_path_factory.mktemp("credentials") / "dev.p12"
    path.write_bytes(build_dev_credential(CREDENTIAL_PASSWORD))
    return str(path)


@pytest.fixture
def signature_image(tmp_path):
    path = tmp_path / "signature.png"
    Image.new("RGBA", (400, 200), (20, 20, 120, 255)).save(path)
    return str(path)


@pytest.fixture
def app(tmp_path, templates_dir, credential_path):
    application = create_app(
        {
            "TESTING": True,
            "SITE_ROOT": str(tmp_path),
            "CERTIFICATES_DIR": str(tmp_path / "certificates"),
            "TEMPLATES_DIR": str(templates_dir),
            "DEFAULT_TEMPLATE_PATH": str(
                templates_dir / TEMPLATE_FILENAMES["participation"]
            ),
            "SCRIPT_FONT_PATH": VERA_TTF,
            "SIGNATURE_IMAGE_PATH": str(tmp_path / "no-signature.png"),
            "P12_PATH": credential_path,
            "P12_PASSWORD": CREDENTIAL_PASSWORD,
        }
    )
    with application.app_context():
        yield application


@pytest.fixture
def cert_request():
    return CertificateRequest(
        certificate_number="CERT-1700000000000-042",
        participant_name="Juan dela Cruz",
        cert_type="Participation",
        participant_role="Teacher I",
        participant_school="Imus National High School",
        participant_unit="Science Department",
        event_name="Division Training on Research",
        event_venue="Imus City Hall",
        event_date="2024-03-15",
        issued_date="2024-03-16",
        created_at="2024-03-16T09:30:00",
        duration="8 hours",
        cpd_units="N/A",
        prc_number="0123456",
        issuer_name="Maria Santos",
    )
