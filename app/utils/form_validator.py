import re
from typing import Literal
from pydantic import BaseModel, Field, ValidationError, field_validator

from app.models.find import NewFind
from app.utils.errors import ValidationFailed


WHAT3WORDS_RE = re.compile(r"^[a-z]+\.[a-z]+\.[a-z]+$", re.IGNORECASE | re.ASCII)


def is_valid_what3words(value: str) -> bool:
    # ASCII letters only; str.isalpha would accept accented tokens
    return bool(WHAT3WORDS_RE.fullmatch(value))


class ValidatedCreateFind(BaseModel):
    name: str = Field(min_length=1)
    date: str = ""
    location: str = ""
    coordinates: str = ""
    what3words: str = ""
    depth: str = ""
    metal_type: str = ""
    condition: Literal["", "Excellent", "Good", "Fair", "Poor"] = ""
    notes: str = ""

    @field_validator("what3words")
    @classmethod
    def check_what3words(cls, value: str):
        if value and not is_valid_what3words(value):
            raise ValueError("Please enter a valid what3words address (format: word.word.word)")
        return value


def validate_find_form(
    name: str,
    date: str = "",
    location: str = "",
    coordinates: str = "",
    what3words: str = "",
    depth: str = "",
    metal_type: str = "",
    condition: str = "",
    notes: str = "",
) -> NewFind:
    try:
        validated = ValidatedCreateFind(
            name=name.strip(),
            date=date.strip(),
            location=location.strip(),
            coordinates=coordinates.strip(),
            what3words=what3words.strip(),
            depth=depth.strip(),
            metal_type=metal_type.strip(),
            condition=condition.strip(),
            notes=notes.strip(),
        )
    except ValidationError as e:
        raise ValidationFailed("Invalid find", errors=e.errors(include_url=False, include_context=False)) from e

    return NewFind(**validated.model_dump())
