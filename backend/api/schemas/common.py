"""
Shared schema pieces.
"""

from typing import Any, ClassVar

from pydantic import BaseModel, model_validator


class PartialUpdate(BaseModel):
    """Base for PUT bodies: omitted fields stay unchanged.

    Fields listed in ``non_nullable`` map to NOT NULL columns, so an explicit
    ``null`` for them is a validation error rather than a cleared value.
    """

    non_nullable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = [name for name in cls.non_nullable if name in data and data[name] is None]
            if nulls:
                raise ValueError(f"Fields cannot be null: {', '.join(nulls)}")
        return data
