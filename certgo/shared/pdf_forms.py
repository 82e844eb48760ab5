from __future__ import annotations

import re
from dataclasses import replace
from io import BytesIO
from typing import Iterable, NamedTuple

from PyPDF2 import PdfReader, PdfWriter
from PyPDF2.generic import (
    ArrayObject,
    DictionaryObject,
    NameObject,
    NumberObject,
    TextStringObject,
)
from reportlab.pdfgen import canvas

from .certificates_layout import (
    ALIGN_CENTER,
    ALIGN_LEFT,
    ALIGN_RIGHT,
    DEFAULT_LAYOUT,
    FieldRect,
    LayoutConfig,
    draw,
    fit_single_line,
    layout_wrapped,
)
from .fonts import HELVETICA

_QUADDING = {0: ALIGN_LEFT, 1: ALIGN_CENTER, 2: ALIGN_RIGHT}
_READ_ONLY_FLAG = 1
_MULTILINE_FLAG = 1 << 12
_AUTO_FONT_SIZE = 10.0
_DA_SIZE_RE = re.compile(r"([\d.]+)\s+Tf")


class FormField(NamedTuple):
    name: str
    page_index: int
    rect: FieldRect
    alignment: str
    field: DictionaryObject


def _field_dict(annot: DictionaryObject) -> DictionaryObject | None:
    if "/T" in annot:
        return annot
    if "/Parent" in annot:
        parent = annot["/Parent"].get_object()
        if "/T" in parent:
            return parent
    return None


def _field_value(field: DictionaryObject) -> str:
    return str(field["/V"]) if "/V" in field else ""


def _normalize_rect(raw) -> FieldRect:
    x1, y1, x2, y2 = (float(v) for v in raw)
    return FieldRect(min(x1, x2), min(y1, y2), abs(x2 - x1), abs(y2 - y1))


def _page_annotations(page) -> list:
    if "/Annots" not in page:
        return []
    return list(page["/Annots"].get_object())


def _is_widget(annot: DictionaryObject) -> bool:
    return annot.get("/Subtype") == "/Widget"


class PageOverlay:
    """One reportlab canvas per touched page, merged onto the template at the end."""

    def __init__(self, reader: PdfReader):
        self.reader = reader
        self._canvases: dict[int, tuple[BytesIO, canvas.Canvas]] = {}

    def canvas(self, page_index: int) -> canvas.Canvas:
        if page_index not in self._canvases:
            page = self.reader.pages[page_index]
            width = float(page.mediabox.width)
            height = float(page.mediabox.height)
            buffer = BytesIO()
            self._canvases[page_index] = (
                buffer,
                canvas.Canvas(buffer, pagesize=(width, height)),
            )
        return self._canvases[page_index][1]

    def merge(self) -> None:
        for page_index, (buffer, c) in sorted(self._canvases.items()):
            c.save()
            buffer.seek(0)
            overlay_page = PdfReader(buffer).pages[0]
            self.reader.pages[page_index].merge_page(overlay_page)
        self._canvases.clear()


class TemplateForm:
    """Named text fields of a template PDF, keyed by their /T name.

    A name can appear on several widgets; each one is filled.
    """

    def __init__(self, reader: PdfReader):
        self.reader = reader
        self.fields: dict[str, list[FormField]] = self._index_fields()
        self._native: dict[str, tuple[float, bool]] = {}

    def _acro_form(self) -> DictionaryObject | None:
        root = self.reader.trailer["/Root"]
        if "/AcroForm" not in root:
            return None
        return root["/AcroForm"].get_object()

    def _default_quadding(self) -> int:
        acro_form = self._acro_form()
        if acro_form is None or "/Q" not in acro_form:
            return 1
        return int(acro_form["/Q"])

    def _index_fields(self) -> dict[str, list[FormField]]:
        default_q = self._default_quadding()
        found: dict[str, list[FormField]] = {}
        for page_index, page in enumerate(self.reader.pages):
            for ref in _page_annotations(page):
                annot = ref.get_object()
                if not _is_widget(annot):
                    continue
                field = _field_dict(annot)
                if field is None or "/Rect" not in annot:
                    continue
                name = str(field["/T"])
                if "/Q" in annot:
                    quadding = int(annot["/Q"])
                elif "/Q" in field:
                    quadding = int(field["/Q"])
                else:
                    quadding = default_q
                found.setdefault(name, []).append(
                    FormField(
                        name=name,
                        page_index=page_index,
                        rect=_normalize_rect(annot["/Rect"]),
                        alignment=_QUADDING.get(quadding, ALIGN_CENTER),
                        field=field,
                    )
                )
        return found

    def __contains__(self, name: str) -> bool:
        return name in self.fields

    def widgets(self, name: str) -> list[FormField]:
        return list(self.fields.get(name, ()))

    def _field_dicts(self, name: str) -> list[DictionaryObject]:
        unique: dict[int, DictionaryObject] = {}
        for widget in self.fields[name]:
            unique.setdefault(id(widget.field), widget.field)
        return list(unique.values())

    def set_text(
        self, name: str, value: str, font_size: float, multiline: bool = False
    ) -> None:
        """Native field text: the value is kept on the field and burned in at flatten."""
        for field in self._field_dicts(name):
            field[NameObject("/V")] = TextStringObject(value or "")
            field[NameObject("/DA")] = TextStringObject(f"/Helv {font_size:g} Tf 0 g")
            flags = int(field["/Ff"]) if "/Ff" in field else 0
            flags |= _READ_ONLY_FLAG
            if multiline:
                flags |= _MULTILINE_FLAG
            field[NameObject("/Ff")] = NumberObject(flags)
        self._native[name] = (font_size, multiline)

    def clear(self, name: str) -> None:
        for field in self._field_dicts(name):
            field[NameObject("/V")] = TextStringObject("")
        self._native.pop(name, None)

    def _template_style(self, form_field: FormField) -> tuple[float, bool]:
        """Font size and multiline flag a template declares for a prefilled field."""
        field = form_field.field
        acro_form = self._acro_form()
        if "/DA" in field:
            appearance = str(field["/DA"])
        elif acro_form is not None and "/DA" in acro_form:
            appearance = str(acro_form["/DA"])
        else:
            appearance = ""
        match = _DA_SIZE_RE.search(appearance)
        size = float(match.group(1)) if match else 0.0
        flags = int(field["/Ff"]) if "/Ff" in field else 0
        return size or _AUTO_FONT_SIZE, bool(flags & _MULTILINE_FLAG)

    def _burn(
        self,
        overlay: PageOverlay,
        form_field: FormField,
        text: str,
        font_size: float,
        multiline: bool,
        config: LayoutConfig,
    ) -> None:
        if multiline:
            result = layout_wrapped(
                text, form_field.rect, HELVETICA, font_size, form_field.alignment, config
            )
        else:
            result = fit_single_line(
                text, form_field.rect, HELVETICA, font_size, form_field.alignment, config
            )
        draw(overlay.canvas(form_field.page_index), result, HELVETICA, config)

    def flatten(
        self, overlay: PageOverlay, config: LayoutConfig = DEFAULT_LAYOUT
    ) -> None:
        """Burn field values into the page content, then drop every widget.

        Native values keep their original size. Values the template already
        carried are burned with the size from their /DA.
        """
        unshrunk = replace(config, plain_floor_ratio=1.0)
        for name, widgets in self.fields.items():
            for form_field in widgets:
                text = _field_value(form_field.field)
                if not text:
                    continue
                if name in self._native:
                    font_size, multiline = self._native[name]
                else:
                    font_size, multiline = self._template_style(form_field)
                self._burn(overlay, form_field, text, font_size, multiline, unshrunk)
        overlay.merge()
        for page in self.reader.pages:
            if "/Annots" not in page:
                continue
            kept = [ref for ref in _page_annotations(page) if not _is_widget(ref.get_object())]
            if kept:
                page[NameObject("/Annots")] = ArrayObject(kept)
            else:
                del page["/Annots"]
        root = self.reader.trailer["/Root"]
        if "/AcroForm" in root:
            del root["/AcroForm"]
        self._native.clear()


def write_pdf(pages: Iterable) -> bytes:
    """Serialize pages with classic cross-reference tables (no object streams)."""
    writer = PdfWriter()
    for page in pages:
        writer.add_page(page)
    out_buf = BytesIO()
    writer.write(out_buf)
    return out_buf.getvalue()
