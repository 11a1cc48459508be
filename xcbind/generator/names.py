"""Conversion of protocol identifiers to Rust/C naming conventions."""

import re

# Capital-led word, acronym run not followed by a lowercase letter, lowercase run.
# Digits never extend a lowercase run: "x11" splits as "x_11".
_NAME_RE = re.compile(r"([A-Z0-9][a-z]+|[A-Z0-9]+(?![a-z])|[a-z]+)")

NAME_SPECIAL_CASES = {"DECnet": "decnet"}

# Extension names that get split like any other identifier instead of lowercased
EXTENSION_SPECIAL_CASES = frozenset(["XPrint", "XCMisc", "BigRequests"])

RUST_KEYWORDS = frozenset(
    [
        "as",
        "async",
        "await",
        "box",
        "break",
        "const",
        "continue",
        "crate",
        "dyn",
        "else",
        "enum",
        "extern",
        "false",
        "final",
        "fn",
        "for",
        "if",
        "impl",
        "in",
        "let",
        "loop",
        "match",
        "mod",
        "move",
        "mut",
        "override",
        "priv",
        "pub",
        "ref",
        "return",
        "self",
        "static",
        "struct",
        "super",
        "trait",
        "true",
        "type",
        "unsafe",
        "use",
        "where",
        "while",
        "yield",
    ]
)


def convert_name(name: str) -> str:
    """Convert a mixed-case protocol identifier to lower_snake_case.

    Non-alphanumeric characters are dropped and never start a new word:

    >>> convert_name("XF86VidModeGetGammaRamp")
    'xf86_vid_mode_get_gamma_ramp'
    """
    if name in NAME_SPECIAL_CASES:
        return NAME_SPECIAL_CASES[name]
    return "_".join(m.group(0) for m in _NAME_RE.finditer(name)).lower()


def convert_extension_name(name: str) -> str:
    """Convert an extension name to its symbol prefix."""
    if name in EXTENSION_SPECIAL_CASES:
        return convert_name(name)
    return name.lower()


def constant_name(name: str) -> str:
    return name.upper()


def sanitize_field_name(name: str) -> str:
    """Rename fields that collide with Rust keywords."""
    if name in RUST_KEYWORDS:
        return f"{name}_"
    return name
