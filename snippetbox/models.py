# This file describes the user-facing documents handled by snippetbox so that
# submitted form data can be checked before it is processed further.
#
# Type checks go through vtjson (https://github.com/vdbergh/vtjson); length
# and pattern checks produce the conventional "Path `field` ..." messages that
# `snippetbox.formatting.format_validation_message` turns into readable text.

from __future__ import annotations

import re
from dataclasses import dataclass, field

from vtjson import ValidationError, validate


@dataclass(frozen=True)
class FieldOptions:
    minlength: int | None = None
    maxlength: int | None = None
    pattern: str | None = None
    secret: bool = False

    def violations(self, name: str, value: str) -> list[str]:
        shown = "" if self.secret else f" (`{value}`)"
        messages = []
        if self.maxlength is not None and len(value) > self.maxlength:
            messages.append(
                f"Path `{name}`{shown} is longer than the maximum allowed "
                f"length ({self.maxlength}).",
            )
        elif self.minlength is not None and len(value) < self.minlength:
            messages.append(
                f"Path `{name}`{shown} is shorter than the minimum allowed "
                f"length ({self.minlength}).",
            )
        if self.pattern is not None and not re.search(self.pattern, value):
            messages.append(f"Path `{name}` is invalid{shown}.")
        return messages


class UnknownPathError(KeyError):
    pass


@dataclass(frozen=True)
class ModelSchema:
    name: str
    fields: dict[str, FieldOptions] = field(default_factory=dict)

    def path(self, name: str) -> FieldOptions:
        try:
            return self.fields[name]
        except KeyError:
            raise UnknownPathError(name) from None

    def has_path(self, name: str) -> bool:
        return name in self.fields

    def type_schema(self) -> dict[str, type]:
        return {name: str for name in self.fields}


class ModelValidationError(ValueError):
    """Raised when a document does not satisfy its model schema."""

    def __init__(self, schema: ModelSchema, errors: list[tuple[str, str]]) -> None:
        self.schema = schema
        self.errors = errors
        details = ", ".join(f"{path}: {message}" for path, message in errors)
        super().__init__(f"{schema.name} validation failed: {details}")


USER_SCHEMA = ModelSchema(
    name="User",
    fields={
        "username": FieldOptions(minlength=3, maxlength=20),
        "password": FieldOptions(
            minlength=10,
            maxlength=256,
            pattern=r"\d",
            secret=True,
        ),
    },
)

SNIPPET_SCHEMA = ModelSchema(
    name="Snippet",
    fields={
        "description": FieldOptions(minlength=1, maxlength=100),
        "snippet": FieldOptions(minlength=1, maxlength=5000),
    },
)


def validate_document(schema: ModelSchema, data: dict[str, object]) -> None:
    """Check `data` against `schema`, raising ModelValidationError on failure."""
    try:
        validate(schema.type_schema(), data, name=schema.name.lower(), strict=False)
    except ValidationError as e:
        raise ModelValidationError(schema, [(schema.name.lower(), str(e))]) from e

    errors = []
    for name, options in schema.fields.items():
        for message in options.violations(name, data[name]):
            errors.append((name, message))
    if errors:
        raise ModelValidationError(schema, errors)
