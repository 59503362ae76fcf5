"""Schemas for records arriving from share links and saved state."""
from typing import Annotated, List, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    field_validator,
    model_validator,
)

from .config import GRADE_POINTS, MAX_CREDITS, UNGRADED
from .record import AcademicRecord, Module, Semester

# Ints stay ints so a token re-encodes the way it came in; NaN and Infinity are refused.
FiniteFloat = Annotated[float, Field(strict=True, allow_inf_nan=False)]
Number = Union[StrictInt, FiniteFloat]


def _is_negative_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0


class ModuleToken(BaseModel):
    """One module as written in a token: camelCase keys, S/U flag optional."""
    model_config = ConfigDict(populate_by_name=True)

    id: StrictStr
    name: StrictStr
    credits: Number
    grade_value: Number = Field(alias="gradeValue")
    is_exempt: StrictBool = Field(alias="isExempt")

    @model_validator(mode="before")
    @classmethod
    def legacy_exempt_flag(cls, data):
        # Tokens from before the flag existed mark S/U with a negative grade
        if isinstance(data, dict) and "isExempt" not in data and "is_exempt" not in data:
            data = {**data, "isExempt": _is_negative_number(data.get("gradeValue"))}
        return data

    @field_validator("credits")
    @classmethod
    def credits_in_range(cls, v):
        if abs(v) > MAX_CREDITS:
            raise ValueError(f"credits must be within +/-{MAX_CREDITS}")
        return v

    @field_validator("grade_value")
    @classmethod
    def grade_on_scale(cls, v) -> float:
        if v < 0:
            return UNGRADED
        if v not in GRADE_POINTS:
            raise ValueError(f"gradeValue must be one of {GRADE_POINTS} or negative")
        return float(v)

    def to_module(self) -> Module:
        return Module(
            id=self.id,
            name=self.name,
            credits=self.credits,
            grade_value=self.grade_value,
            is_exempt=self.is_exempt,
        )


class SemesterToken(BaseModel):
    id: StrictStr
    label: StrictStr
    modules: List[ModuleToken]

    @model_validator(mode="after")
    def unique_module_ids(self):
        ids = [m.id for m in self.modules]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate module id in semester {self.id!r}")
        return self

    def to_semester(self) -> Semester:
        return Semester(id=self.id, label=self.label, modules=[m.to_module() for m in self.modules])


RecordToken = TypeAdapter(List[SemesterToken])


def validate_record(data) -> AcademicRecord:
    """Validate a decoded JSON record. Raises ValueError (pydantic.ValidationError is one)."""
    semesters = RecordToken.validate_python(data)
    ids = [s.id for s in semesters]
    if len(ids) != len(set(ids)):
        raise ValueError("duplicate semester id")
    return AcademicRecord(semesters=[s.to_semester() for s in semesters])
