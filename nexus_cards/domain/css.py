"""Sanitizer for user supplied custom CSS."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

CSS_MAX_SIZE_BYTES = 100 * 1024

ALLOWED_PROPERTIES = frozenset(
    {
        "color", "background", "background-color", "background-image", "background-size",
        "background-position", "background-repeat",
        "border", "border-top", "border-right", "border-bottom", "border-left", "border-color",
        "border-style", "border-width", "border-radius", "border-top-left-radius",
        "border-top-right-radius", "border-bottom-left-radius", "border-bottom-right-radius",
        "margin", "margin-top", "margin-right", "margin-bottom", "margin-left",
        "padding", "padding-top", "padding-right", "padding-bottom", "padding-left",
        "font", "font-family", "font-size", "font-weight", "font-style", "font-variant",
        "line-height", "letter-spacing", "word-spacing", "text-align", "text-decoration",
        "text-transform", "text-indent",
        "width", "height", "min-width", "min-height", "max-width", "max-height",
        "display", "position", "top", "right", "bottom", "left",
        "float", "clear", "overflow", "overflow-x", "overflow-y",
        "opacity", "visibility", "z-index",
        "box-shadow", "text-shadow", "transition", "transform", "animation",
        "cursor", "outline", "outline-color", "outline-style", "outline-width",
        "list-style", "list-style-type", "list-style-position", "list-style-image",
        "vertical-align", "white-space", "word-break", "word-wrap",
        "flex", "flex-direction", "flex-wrap", "flex-flow", "justify-content", "align-items",
        "align-content", "grid", "grid-template", "grid-gap", "gap",
    }
)

DANGEROUS_PATTERNS = [
    (re.compile(r"@import", re.I), "@import directive"),
    (re.compile(r"expression\s*\(", re.I), "expression() function"),
    (re.compile(r"behavior\s*:", re.I), "behavior property"),
    (re.compile(r"-moz-binding", re.I), "-moz-binding property"),
    (re.compile(r"javascript\s*:", re.I), "javascript: protocol"),
    (re.compile(r"vbscript\s*:", re.I), "vbscript: protocol"),
    (re.compile(r"data\s*:(?!image/)", re.I), "data: protocol (non-image)"),
    (re.compile(r"</?script", re.I), "<script> tag"),
    (re.compile(r"<(iframe|object|embed|html|head|body|!doctype)", re.I), "HTML tag"),
    (re.compile(r"\bon\w+\s*=", re.I), "event handler attribute"),
    (re.compile(r"<"), "markup character <"),
]

_COMMENT = re.compile(r"/\*.*?\*/", re.S)
_BLOCK_BODY = re.compile(r"\{([^{}]*)\}")
_DECLARATION = re.compile(r"^\s*([a-zA-Z-]+)\s*:")


@dataclass
class CssSanitizeResult:
    sanitized: str = ""
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)


def sanitize_css(css: str | None) -> CssSanitizeResult:
    if not css:
        return CssSanitizeResult()

    text = css.strip()
    size = len(text.encode("utf-8"))
    if size > CSS_MAX_SIZE_BYTES:
        return CssSanitizeResult(
            is_valid=False,
            errors=[
                f"CSS size exceeds maximum allowed ({CSS_MAX_SIZE_BYTES // 1024}KB). "
                f"Current size: {size / 1024:.2f}KB"
            ],
        )

    text = _COMMENT.sub("", text)
    errors = [f"Blocked dangerous pattern: {name}" for pattern, name in DANGEROUS_PATTERNS if pattern.search(text)]
    if errors:
        return CssSanitizeResult(is_valid=False, errors=errors)

    for body in _BLOCK_BODY.findall(text):
        for declaration in body.split(";"):
            match = _DECLARATION.match(declaration)
            if not match:
                continue
            prop = match.group(1).lower()
            if prop.startswith("--"):
                continue
            if prop not in ALLOWED_PROPERTIES:
                errors.append(f"Disallowed CSS property: {prop}")
    if errors:
        return CssSanitizeResult(is_valid=False, errors=errors)

    return CssSanitizeResult(sanitized=text.strip())
