from __future__ import annotations

import logging
from pathlib import Path

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

logger = logging.getLogger(__name__)

DEJAVU_REGULAR = "DejaVuSans"
DEJAVU_BOLD = "DejaVuSans-Bold"

_BUILTIN_FONTS = {
    ("helvetica", "normal"): "Helvetica",
    ("helvetica", "bold"): "Helvetica-Bold",
    ("courier", "normal"): "Courier",
    ("courier", "bold"): "Courier-Bold",
    ("times", "normal"): "Times-Roman",
    ("times", "bold"): "Times-Bold",
}
_registered_body_fonts: dict[str, str] = {}


def register_dejavu_fonts(font_dir: Path | None) -> bool:
    """Registers DejaVu Sans as the body family when its TTF files are present."""

    if font_dir is None:
        return False
    regular = font_dir / f"{DEJAVU_REGULAR}.ttf"
    bold = font_dir / f"{DEJAVU_BOLD}.ttf"
    if not (regular.is_file() and bold.is_file()):
        logger.info("DejaVu fonts not found, using Helvetica", extra={"extra": {"font_dir": str(font_dir)}})
        return False
    pdfmetrics.registerFont(TTFont(DEJAVU_REGULAR, str(regular)))
    pdfmetrics.registerFont(TTFont(DEJAVU_BOLD, str(bold)))
    _registered_body_fonts.update({"normal": DEJAVU_REGULAR, "bold": DEJAVU_BOLD})
    return True


def resolve_font_name(family: str, weight: str = "normal") -> str:
    family = family.lower()
    weight = "bold" if weight.lower() == "bold" else "normal"
    if family in {"body", "dejavu"}:
        if weight in _registered_body_fonts:
            return _registered_body_fonts[weight]
        family = "helvetica"
    try:
        return _BUILTIN_FONTS[(family, weight)]
    except KeyError:
        raise ValueError(f"Unknown font family: {family}") from None
