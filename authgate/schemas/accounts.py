"""Pydantic schemas for account registration."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, StrictStr

# JSON decoding accepts the NaN/Infinity literals; an age must still be a real number.
FiniteFloat = Annotated[float, Field(strict=True, allow_inf_nan=False)]


class RegistrationPayload(BaseModel):
    """Shape every registration request body must have.

    Structural only: no duplicate check, no banned-word filtering and no
    password strength rule beyond the minimum length. Unknown fields are
    ignored. Field names follow the wire format.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    email: EmailStr = Field(
        ...,
        description="Contact address; must be a syntactically valid email.",
    )
    userName: StrictStr = Field(
        ...,
        min_length=1,
        description="Identity key used for throttling and account lookup.",
    )
    password: StrictStr = Field(
        ...,
        min_length=8,
        description="Account password, at least 8 characters.",
    )
    age: StrictInt | FiniteFloat = Field(
        ...,
        description="Numeric age. Strings, booleans, NaN and infinities are rejected.",
    )
