from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable, Iterable, Mapping, NamedTuple, Sequence, Union

from reportlab.pdfbase.pdfmetrics import stringWidth

ALIGN_LEFT = "left"
ALIGN_CENTER = "center"
ALIGN_RIGHT = "right"
ALIGNMENTS = (ALIGN_LEFT, ALIGN_CENTER, ALIGN_RIGHT)

MODE_PLAIN = "plain"
MODE_WRAP = "wrap"
MODE_RICH = "rich"
LAYOUT_MODES = (MODE_PLAIN, MODE_WRAP, MODE_RICH)


class FieldRect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


class StyledSegment(NamedTuple):
    text: str
    is_bold: bool = False


class TextAtom(NamedTuple):
    text: str
    is_bold: bool = False
    # True when the atom continues the previous one with no whitespace between
    glued: bool = False


class FontSpec(NamedTuple):
    regular: str
    bold: str | None = None

    def face(self, is_bold: bool) -> str:
        if is_bold and self.bold:
            return self.bold
        return self.regular

    def fakes_bold(self, is_bold: bool) -> bool:
        return is_bold and not self.bold


class LayoutLine(NamedTuple):
    atoms: tuple[TextAtom, ...]
    width: float


class PlacedLine(NamedTuple):
    x: float
    y: float
    atoms: tuple[TextAtom, ...]
    width: float


class LayoutResult(NamedTuple):
    lines: tuple[PlacedLine, ...]
    font_size: float
    line_height: float
    total_height: float
    truncated: bool = False
    rect: FieldRect | None = None

    @property
    def text(self) -> str:
        return "\n".join(join_atoms(line.atoms) for line in self.lines)


@dataclass(frozen=True)
class LayoutConfig:
    padding: float = 4.0
    shrink_step: float = 0.5
    plain_floor_ratio: float = 0.5
    plain_min_size: float = 6.0
    rich_min_size: float = 8.0
    wrap_line_factor: float = 2.0
    rich_line_factor: float = 1.8
    baseline_factor: float = 0.7
    faux_bold_offset: float = 0.3
    faux_bold: bool = True


DEFAULT_LAYOUT = LayoutConfig()

Content = Union[str, Sequence[StyledSegment]]


def sanitize_layout_config(layout: Mapping | None) -> LayoutConfig:
    """Build a LayoutConfig from loose config values, keeping defaults for bad input."""
    if isinstance(layout, LayoutConfig):
        return layout
    if not isinstance(layout, Mapping):
        return DEFAULT_LAYOUT
    values: dict = {}
    for spec in fields(LayoutConfig):
        if spec.name not in layout:
            continue
        raw = layout[spec.name]
        if spec.name == "faux_bold":
            values["faux_bold"] = bool(raw)
            continue
        try:
            number = float(raw)
        except (TypeError, ValueError):
            continue
        if spec.name in ("padding", "faux_bold_offset"):
            if number >= 0:
                values[spec.name] = number
        elif spec.name == "plain_floor_ratio":
            if 0 < number <= 1:
                values[spec.name] = number
        elif number > 0:
            values[spec.name] = number
    return LayoutConfig(**values)


def flatten_segments(segments: Iterable[StyledSegment]) -> list[TextAtom]:
    """Split styled segments into words, keeping order and each segment's weight.

    Words never merge across a segment boundary. A word that touches the
    previous segment with no whitespace between is marked as glued.
    """
    atoms: list[TextAtom] = []
    pending_space = True
    for segment in segments:
        text = segment.text or ""
        if not text:
            continue
        words = text.split()
        if not words:
            pending_space = True
            continue
        leading_space = text[0].isspace()
        for index, word in enumerate(words):
            glued = (
                bool(atoms) and index == 0 and not leading_space and not pending_space
            )
            atoms.append(TextAtom(word, bool(segment.is_bold), glued))
        pending_space = text[-1].isspace()
    return atoms


def join_atoms(atoms: Iterable[TextAtom]) -> str:
    parts: list[str] = []
    for index, atom in enumerate(atoms):
        if index and not atom.glued:
            parts.append(" ")
        parts.append(atom.text)
    return "".join(parts)


def atom_width(atom: TextAtom, font: FontSpec, size: float) -> float:
    return stringWidth(atom.text, font.face(atom.is_bold), size)


def truncate_to_width(
    text: str, max_width: float, measure: Callable[[str], float]
) -> str:
    """Longest prefix of text that fits max_width."""
    if measure(text) <= max_width:
        return text
    low, high = 0, len(text)
    while low < high:
        mid = (low + high + 1) // 2
        if measure(text[:mid]) <= max_width:
            low = mid
        else:
            high = mid - 1
    return text[:low]


def _group_words(atoms: Iterable[TextAtom]) -> list[list[TextAtom]]:
    groups: list[list[TextAtom]] = []
    for atom in atoms:
        if atom.glued and groups:
            groups[-1].append(atom)
        else:
            groups.append([atom])
    return groups


def _truncate_group(
    group: list[TextAtom], max_width: float, font: FontSpec, size: float
) -> list[TextAtom]:
    kept: list[TextAtom] = []
    used = 0.0
    for atom in group:
        width = atom_width(atom, font, size)
        if used + width <= max_width:
            kept.append(atom)
            used += width
            continue
        face = font.face(atom.is_bold)
        remainder = truncate_to_width(
            atom.text, max_width - used, lambda t: stringWidth(t, face, size)
        )
        if remainder:
            kept.append(atom._replace(text=remainder))
        break
    return kept


def wrap_atoms(
    atoms: Sequence[TextAtom],
    max_width: float,
    font: FontSpec,
    size: float,
    *,
    truncate: bool = False,
) -> tuple[list[LayoutLine], bool]:
    """Greedy line packing; returns the lines and whether anything was cut."""
    space = stringWidth(" ", font.regular, size)
    lines: list[LayoutLine] = []
    current: list[TextAtom] = []
    current_width = 0.0
    truncated = False
    for group in _group_words(atoms):
        width = sum(atom_width(atom, font, size) for atom in group)
        if width > max_width and truncate:
            group = _truncate_group(group, max_width, font, size)
            truncated = True
            if not group:
                continue
            width = sum(atom_width(atom, font, size) for atom in group)
        if current:
            candidate = current_width + space + width
            if candidate <= max_width:
                current.extend(group)
                current_width = candidate
                continue
            lines.append(LayoutLine(tuple(current), current_width))
        # a new line never starts glued to the previous one
        current = [group[0]._replace(glued=False), *group[1:]]
        current_width = width
    if current:
        lines.append(LayoutLine(tuple(current), current_width))
    return lines, truncated


def _line_x(rect: FieldRect, width: float, alignment: str, padding: float) -> float:
    inner_left = rect.x + padding / 2
    if alignment == ALIGN_RIGHT:
        x = rect.x + rect.width - padding / 2 - width
    elif alignment == ALIGN_LEFT:
        x = inner_left
    else:
        x = rect.x + (rect.width - width) / 2
    return max(x, inner_left)


def _place_lines(
    lines: Sequence[LayoutLine],
    rect: FieldRect,
    alignment: str,
    size: float,
    line_height: float,
    config: LayoutConfig,
    truncated: bool,
) -> LayoutResult:
    total_height = len(lines) * line_height
    first_baseline = (
        rect.y + rect.height / 2 + total_height / 2 - line_height * config.baseline_factor
    )
    placed = tuple(
        PlacedLine(
            _line_x(rect, line.width, alignment, config.padding),
            first_baseline - index * line_height,
            line.atoms,
            line.width,
        )
        for index, line in enumerate(lines)
    )
    return LayoutResult(placed, size, line_height, total_height, truncated, rect)


def plain_floor(size: float, config: LayoutConfig = DEFAULT_LAYOUT) -> float:
    return min(size, max(size * config.plain_floor_ratio, config.plain_min_size))


def fit_single_line(
    text: str,
    rect: FieldRect,
    font: FontSpec,
    size: float,
    alignment: str = ALIGN_CENTER,
    config: LayoutConfig = DEFAULT_LAYOUT,
    *,
    bold: bool = False,
) -> LayoutResult:
    """Single line, shrinking in fixed steps until it fits or hits the floor.

    Text still too wide at the floor size is cut to the field width.
    """
    face = font.face(bold)
    available = max(rect.width - config.padding, 0.0)
    floor = plain_floor(size, config)
    current = size
    width = stringWidth(text, face, current)
    while width > available and current > floor:
        current = max(current - config.shrink_step, floor)
        width = stringWidth(text, face, current)
    truncated = width > available
    if truncated:
        text = truncate_to_width(text, available, lambda t: stringWidth(t, face, current))
        width = stringWidth(text, face, current)
    baseline = rect.y + rect.height / 2 - current * config.baseline_factor / 2
    line = PlacedLine(
        _line_x(rect, width, alignment, config.padding),
        baseline,
        (TextAtom(text, bold),),
        width,
    )
    return LayoutResult((line,), current, current, current, truncated, rect)


def layout_wrapped(
    text: str,
    rect: FieldRect,
    font: FontSpec,
    size: float,
    alignment: str = ALIGN_CENTER,
    config: LayoutConfig = DEFAULT_LAYOUT,
    *,
    bold: bool = False,
) -> LayoutResult:
    atoms = [TextAtom(word, bold) for word in (text or "").split()]
    available = max(rect.width - config.padding, 0.0)
    lines, truncated = wrap_atoms(atoms, available, font, size, truncate=True)
    line_height = size * config.wrap_line_factor
    return _place_lines(lines, rect, alignment, size, line_height, config, truncated)


def measure_rich(
    atoms: Sequence[TextAtom],
    font: FontSpec,
    size: float,
    max_width: float,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> float:
    """Height of the wrapped rich block at a given size."""
    lines, _ = wrap_atoms(atoms, max_width, font, size)
    return len(lines) * size * config.rich_line_factor


def fit_rich(
    segments: Sequence[StyledSegment],
    rect: FieldRect,
    font: FontSpec,
    size: float,
    alignment: str = ALIGN_CENTER,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> LayoutResult:
    """Mixed regular/bold paragraph, shrunk until its wrapped height fits the rect."""
    atoms = flatten_segments(segments)
    available = max(rect.width - config.padding, 0.0)
    limit = rect.height - config.padding
    current = size
    height = measure_rich(atoms, font, current, available, config)
    while height > limit and current > config.rich_min_size:
        current = max(current - config.shrink_step, config.rich_min_size)
        height = measure_rich(atoms, font, current, available, config)
    lines, truncated = wrap_atoms(atoms, available, font, current, truncate=True)
    line_height = current * config.rich_line_factor
    return _place_lines(lines, rect, alignment, current, line_height, config, truncated)


def content_text(content: Content) -> str:
    if isinstance(content, str):
        return content
    return join_atoms(flatten_segments(content))


def layout(
    rect: FieldRect,
    content: Content,
    font: FontSpec,
    alignment: str = ALIGN_CENTER,
    mode: str = MODE_PLAIN,
    *,
    size: float,
    bold: bool = False,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> LayoutResult:
    if mode not in LAYOUT_MODES:
        raise ValueError(f"Unsupported layout mode: {mode!r}")
    if alignment not in ALIGNMENTS:
        alignment = ALIGN_CENTER
    if mode == MODE_RICH:
        segments = (
            [StyledSegment(content, bold)] if isinstance(content, str) else list(content)
        )
        return fit_rich(segments, rect, font, size, alignment, config)
    text = content_text(content)
    if mode == MODE_WRAP:
        return layout_wrapped(text, rect, font, size, alignment, config, bold=bold)
    return fit_single_line(text, rect, font, size, alignment, config, bold=bold)


def draw(
    canvas,
    result: LayoutResult,
    font: FontSpec,
    config: LayoutConfig = DEFAULT_LAYOUT,
) -> None:
    """Paint a computed layout onto a reportlab canvas.

    Each line is clipped horizontally to the field rect when the result has one.
    """
    size = result.font_size
    space = stringWidth(" ", font.regular, size)
    offset = config.faux_bold_offset
    rect = result.rect
    for line in result.lines:
        if rect is not None:
            canvas.saveState()
            band = canvas.beginPath()
            band.rect(rect.x, line.y - size, rect.width, size * 2 + offset)
            canvas.clipPath(band, stroke=0, fill=0)
        x = line.x
        for index, atom in enumerate(line.atoms):
            if index and not atom.glued:
                x += space
            face = font.face(atom.is_bold)
            canvas.setFont(face, size)
            canvas.drawString(x, line.y, atom.text)
            if config.faux_bold and font.fakes_bold(atom.is_bold):
                canvas.drawString(x + offset, line.y, atom.text)
                canvas.drawString(x, line.y + offset, atom.text)
            x += stringWidth(atom.text, face, size)
        if rect is not None:
            canvas.restoreState()
