"""Theme palettes, inline style conversion and page geometry."""

import re
from dataclasses import dataclass, replace
from typing import Any

from quotedoc.schemas.template import Branding, PageSettings, ThemeName


@dataclass(frozen=True)
class Palette:
    primary: str
    secondary: str
    accent: str
    text: str = "#1a1a1a"
    muted: str = "#64748b"
    border: str = "#e2e8f0"
    header_text: str = "#ffffff"
    stripe: str = "#f8fafc"


THEMES: dict[str, Palette] = {
    ThemeName.MODERN.value: Palette(primary="#2563eb", secondary="#64748b", accent="#dbeafe"),
    ThemeName.CLASSIC.value: Palette(
        primary="#1f2937", secondary="#4b5563", accent="#f3f4f6", border="#d1d5db"
    ),
    ThemeName.PROFESSIONAL.value: Palette(
        primary="#0f172a", secondary="#334155", accent="#e2e8f0", border="#cbd5e1"
    ),
    ThemeName.CREATIVE.value: Palette(
        primary="#7c3aed", secondary="#a855f7", accent="#ede9fe", stripe="#faf5ff"
    ),
}

# Style keys consumed by table rules instead of being emitted inline.
TABLE_STYLE_KEYS = frozenset({"tableHeaderBg", "tableHeaderColor", "tableBorderColor"})

# CSS properties whose bare numbers are unitless.
_UNITLESS = frozenset({"line-height", "font-weight", "opacity", "z-index", "flex", "order"})

_UNSAFE_CSS = re.compile(r"[;{}<>\"\\]")
_CSS_KEY = re.compile(r"^[A-Za-z][A-Za-z-]*$")

PAGE_FORMATS = ("A3", "A4", "A5", "Letter", "Legal", "Tabloid")
ORIENTATIONS = ("portrait", "landscape")


def resolve_palette(theme: str | None, branding: Branding | None = None) -> Palette:
    """Theme palette with branding colours layered on top.

    Unknown theme names fall back to MODERN.
    """
    palette = THEMES.get((theme or "").upper(), THEMES[ThemeName.MODERN.value])
    if branding is None:
        return palette
    overrides = {
        "primary": css_value(branding.primary_color),
        "secondary": css_value(branding.secondary_color),
        "accent": css_value(branding.accent_color),
    }
    return replace(palette, **{k: v for k, v in overrides.items() if v})


def css_value(value: Any) -> str:
    """Strip characters that could break out of a declaration."""
    if value is None or isinstance(value, bool):
        return ""
    return _UNSAFE_CSS.sub("", str(value)).strip()


def _kebab(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "-", key).lower()


def style_to_css(style: dict[str, Any], exclude: frozenset[str] = TABLE_STYLE_KEYS) -> str:
    """Convert a camelCase style bag into an inline CSS declaration list."""
    declarations = []
    for key, raw in style.items():
        if key in exclude or not _CSS_KEY.match(key):
            continue
        prop = _kebab(key)
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            value = f"{raw:g}" if prop in _UNITLESS else f"{raw:g}px"
        else:
            value = css_value(raw)
        if value:
            declarations.append(f"{prop}: {value}")
    return "; ".join(declarations)


def css_length(value: Any, default: str = "15mm") -> str:
    """Margin value as a CSS length; bare numbers are millimetres."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g}mm"
    cleaned = css_value(value)
    if not cleaned:
        return default
    if re.fullmatch(r"\d+(\.\d+)?", cleaned):
        return f"{cleaned}mm"
    return cleaned


def page_format(settings: PageSettings) -> str:
    for known in PAGE_FORMATS:
        if settings.page_size.lower() == known.lower():
            return known
    return "A4"


def page_orientation(settings: PageSettings) -> str:
    orientation = settings.orientation.lower()
    return orientation if orientation in ORIENTATIONS else "portrait"


def page_margins(settings: PageSettings) -> dict[str, str]:
    margins = settings.margins
    return {
        "top": css_length(margins.top),
        "right": css_length(margins.right),
        "bottom": css_length(margins.bottom),
        "left": css_length(margins.left),
    }


def page_css(settings: PageSettings) -> str:
    """The @page rule body for a template's page geometry."""
    margins = page_margins(settings)
    return (
        f"size: {page_format(settings)} {page_orientation(settings)}; "
        f"margin: {margins['top']} {margins['right']} {margins['bottom']} {margins['left']};"
    )
