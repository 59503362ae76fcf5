import math
import numbers
import random
import re
import string
import time
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, Tuple

import numpy as np

from .config import (
    BELOW_PASS,
    DEFAULT_CREDITS,
    GRADE_OPTIONS,
    GRADE_POINTS,
    HONOURS_BANDS,
    MAX_CREDITS,
    TOP_GRADE,
    UNGRADED,
)


# ------------------------
# Data model
# ------------------------
@dataclass
class Module:
    id: str
    name: str = ""
    credits: float = DEFAULT_CREDITS
    grade_value: float = TOP_GRADE
    is_exempt: bool = False

    @property
    def counts_toward_gpa(self) -> bool:
        # S/U through the flag, or through the old negative sentinel
        return not self.is_exempt and not is_ungraded(self.grade_value)


@dataclass
class Semester:
    id: str
    label: str
    modules: List[Module] = field(default_factory=list)


@dataclass
class AcademicRecord:
    semesters: List[Semester] = field(default_factory=list)

    def all_modules(self) -> List[Module]:
        return [m for s in self.semesters for m in s.modules]


def is_ungraded(value: float) -> bool:
    return value < 0


def new_module_id(existing: List[Module] = ()) -> str:
    taken = {m.id for m in existing}
    while True:
        mod_id = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
        if mod_id not in taken:
            return mod_id


def new_semester_id(existing: List[Semester]) -> str:
    taken = {s.id for s in existing}
    base = f"sem-{int(time.time() * 1000)}"
    sem_id, n = base, 1
    while sem_id in taken:
        sem_id = f"{base}-{n}"
        n += 1
    return sem_id


# ------------------------
# Field coercion
# ------------------------
def as_credits(value) -> float:
    if isinstance(value, (bool, np.bool_)):
        raise ValueError(f"Credits must be a number (got {value!r}).")
    out_of_range = ValueError(f"Credits must be a number within +/-{MAX_CREDITS} (got {value!r}).")
    if isinstance(value, numbers.Integral):
        if abs(int(value)) > MAX_CREDITS:
            raise out_of_range
        return int(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"Credits must be a number (got {value!r}).") from None
    if not math.isfinite(number) or abs(number) > MAX_CREDITS:
        raise out_of_range
    if not isinstance(value, numbers.Real) and number.is_integer():
        return int(number)
    return number


def as_grade(value) -> float:
    if isinstance(value, (bool, np.bool_)):
        raise ValueError(f"Grade must be a grade point (got {value!r}).")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Grade must be a grade point (got {value!r}).") from None
    if is_ungraded(number):
        return UNGRADED
    if number not in GRADE_POINTS:
        raise ValueError(f"Grade must be one of {GRADE_POINTS} (got {value!r}).")
    return number


def as_flag(value) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    raise ValueError(f"Exempt flag must be a boolean (got {value!r}).")


_FIELDS = {
    "name": ("name", str),
    "credits": ("credits", as_credits),
    "grade_value": ("grade_value", as_grade),
    "gradeValue": ("grade_value", as_grade),
    "is_exempt": ("is_exempt", as_flag),
    "isExempt": ("is_exempt", as_flag),
}


# ------------------------
# Core logic
# ------------------------
def format_gpa(x: float) -> str:
    """Two decimals, halves rounded away from zero on the exact binary value."""
    return str(Decimal(float(x)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def points_and_credits(modules: List[Module]) -> Tuple[float, float]:
    """Sum of grade points x credits, and of credits, over modules that count toward GPA."""
    rows = [(m.grade_value, m.credits) for m in modules if m.counts_toward_gpa]
    if not rows:
        return 0.0, 0.0
    gc = np.array(rows, dtype=float)
    return float(np.dot(gc[:, 0], gc[:, 1])), float(gc[:, 1].sum())


def gpa(modules: List[Module]) -> str:
    points, credit_sum = points_and_credits(modules)
    if credit_sum == 0:
        return "0.00"
    mean = points / credit_sum
    if not np.isfinite(mean):
        return "0.00"
    return format_gpa(mean)


def total_credits(modules: List[Module]) -> float:
    return sum(m.credits for m in modules)


def graded_credits(modules: List[Module]) -> float:
    return sum(m.credits for m in modules if not m.is_exempt)


def classify_honours(value) -> str:
    value = float(value)
    for lower, label in HONOURS_BANDS:
        if value >= lower:
            return label
    return BELOW_PASS


def grade_label(value: float) -> str:
    if is_ungraded(value):
        return "S/U"
    for label, points in GRADE_OPTIONS:
        if points == value:
            return label
    return f"{value:g}"


def required_average_for_target(modules: List[Module],
                                target_gpa: float,
                                remaining_credits: float) -> float:
    """
    Uniform grade point needed on `remaining_credits` further graded credits
    for the cumulative GPA to reach `target_gpa`.
    """
    Cr = float(remaining_credits)
    if Cr <= 0:
        return float("nan")

    points, Ca = points_and_credits(modules)
    return (target_gpa * (Ca + Cr) - points) / Cr


_LABEL_PATTERN = re.compile(r"Year (\d+) Sem (\d+)")


def next_semester_label(semesters: List[Semester]) -> str:
    year, sem = 1, 1
    if semesters:
        match = _LABEL_PATTERN.search(semesters[-1].label)
        if match:
            y, s = int(match.group(1)), int(match.group(2))
            year, sem = (y, 2) if s == 1 else (y + 1, 1)
    return f"Year {year} Sem {sem}"


# ------------------------
# Aggregates
# ------------------------
@dataclass
class SemesterSummary:
    id: str
    label: str
    gpa: str
    total_credits: float
    graded_credits: float


@dataclass
class RecordSummary:
    cumulative_gpa: str
    total_credits: float
    graded_credits: float
    semesters: List[SemesterSummary]

    @property
    def honours(self) -> str:
        return classify_honours(self.cumulative_gpa)


def summarize(record: AcademicRecord) -> RecordSummary:
    modules = record.all_modules()
    return RecordSummary(
        cumulative_gpa=gpa(modules),
        total_credits=total_credits(modules),
        graded_credits=graded_credits(modules),
        semesters=[
            SemesterSummary(
                id=s.id,
                label=s.label,
                gpa=gpa(s.modules),
                total_credits=total_credits(s.modules),
                graded_credits=graded_credits(s.modules),
            )
            for s in record.semesters
        ],
    )


# ------------------------
# Store
# ------------------------
class RecordStore:
    """
    Owns one AcademicRecord and is the only thing that mutates it.

    `summary` is recomputed after every mutation, then subscribers are
    called with the store. Lookups that miss are no-ops.
    """

    def __init__(self, record: Optional[AcademicRecord] = None):
        self.record = record if record is not None else AcademicRecord()
        self.summary = summarize(self.record)
        self._listeners: List[Callable[["RecordStore"], None]] = []

    @property
    def semesters(self) -> List[Semester]:
        return self.record.semesters

    def subscribe(self, callback: Callable[["RecordStore"], None]) -> None:
        self._listeners.append(callback)

    def _changed(self) -> None:
        self.summary = summarize(self.record)
        for callback in self._listeners:
            callback(self)

    def find_semester(self, semester_id: str) -> Optional[Semester]:
        for sem in self.record.semesters:
            if sem.id == semester_id:
                return sem
        return None

    def find_module(self, semester_id: str, module_id: str) -> Optional[Module]:
        sem = self.find_semester(semester_id)
        if sem is None:
            return None
        for mod in sem.modules:
            if mod.id == module_id:
                return mod
        return None

    def replace(self, record: AcademicRecord) -> None:
        self.record = record
        self._changed()

    def add_semester(self) -> Semester:
        sem = Semester(
            id=new_semester_id(self.record.semesters),
            label=next_semester_label(self.record.semesters),
        )
        self.record.semesters.append(sem)
        self._changed()
        return sem

    def remove_semester(self, semester_id: str) -> None:
        sem = self.find_semester(semester_id)
        if sem is None:
            return
        self.record.semesters.remove(sem)
        self._changed()

    def rename_semester(self, semester_id: str, label: str) -> None:
        sem = self.find_semester(semester_id)
        if sem is None:
            return
        sem.label = label
        self._changed()

    def add_module(self, semester_id: str) -> Optional[Module]:
        sem = self.find_semester(semester_id)
        if sem is None:
            return None
        mod = Module(id=new_module_id(sem.modules))
        sem.modules.append(mod)
        self._changed()
        return mod

    def remove_module(self, semester_id: str, module_id: str) -> None:
        sem = self.find_semester(semester_id)
        mod = self.find_module(semester_id, module_id)
        if mod is None:
            return
        sem.modules.remove(mod)
        self._changed()

    def update_module(self, semester_id: str, module_id: str, field_name: str, value) -> None:
        if field_name not in _FIELDS:
            raise ValueError(f"Unknown module field: {field_name!r}")
        attr, coerce = _FIELDS[field_name]
        mod = self.find_module(semester_id, module_id)
        if mod is None:
            return
        setattr(mod, attr, coerce(value))
        self._changed()

    def toggle_exempt(self, semester_id: str, module_id: str) -> None:
        mod = self.find_module(semester_id, module_id)
        if mod is None:
            return
        mod.is_exempt = not mod.is_exempt
        self._changed()
