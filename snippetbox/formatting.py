"""Human-readable rewrites of model validation messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from snippetbox.models import ModelSchema

PATH_MARKER: Final[str] = "Path"
PREAMBLE_MARKER: Final[str] = "validation"

# Checked in this order; the first field named in a segment wins.
KNOWN_FIELDS: Final[tuple[str, ...]] = ("username", "password", "description", "snippet")
PATTERN_FIELDS: Final[frozenset[str]] = frozenset({"password"})

TOO_LONG: Final[str] = "{label}: is longer than the maximum allowed length ({bound})."
TOO_SHORT: Final[str] = "{label}: is shorter than the minimum allowed length ({bound})."
MISSING_DIGIT: Final[str] = "{label}: Requires atleast 1 digit"


def _field_in(segment: str) -> str | None:
    for name in KNOWN_FIELDS:
        if name in segment:
            return name
    return None


def format_segment(segment: str, schema: ModelSchema) -> str:
    """Rewrite one "Path ..." segment, or return it unchanged."""
    name = _field_in(segment)
    if name is None or not schema.has_path(name):
        return segment

    options = schema.path(name)
    label = name.capitalize()
    if "maximum" in segment:
        return TOO_LONG.format(label=label, bound=options.maxlength)
    if name in PATTERN_FIELDS and "invalid" in segment:
        return MISSING_DIGIT.format(label=label)
    return TOO_SHORT.format(label=label, bound=options.minlength)


def format_validation_message(message: str, schema: ModelSchema) -> str:
    """Turn a raw multi-path validation message into field-specific text.

    The message is split on the literal ``Path`` marker, the leading
    "<Model> validation failed" preamble is dropped, and each remaining
    segment naming a known field is replaced by a fixed template with the
    bound taken from `schema`. Anything else is kept verbatim, and the parts
    are joined with a single space.
    """
    segments = [
        segment
        for segment in message.split(PATH_MARKER)
        if PREAMBLE_MARKER not in segment
    ]
    return " ".join(format_segment(segment, schema) for segment in segments)
