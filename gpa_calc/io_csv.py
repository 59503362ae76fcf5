import pandas as pd

from .config import GRADE_OPTIONS
from .record import (
    AcademicRecord,
    Module,
    Semester,
    as_credits,
    as_grade,
    grade_label,
    is_ungraded,
    new_module_id,
    new_semester_id,
)

# ------------------------
# CSV helpers (UI-side)
# ------------------------
EXPORT_COLUMNS = ["Semester", "Module", "Credits", "Grade", "Exempt"]

_GRADE_BY_LABEL = dict(GRADE_OPTIONS)
_TRUE_WORDS = {"true", "yes", "y", "1", "s/u", "su"}


_COLUMN_ALIASES = {"credit": "credits", "mcs": "credits", "mc": "credits", "code": "module"}


def _normalise_cols(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case, trimmed headers; common aliases mapped onto the export names."""
    renamed = {c: str(c).strip().lower() for c in df.columns}
    renamed = {c: _COLUMN_ALIASES.get(name, name) for c, name in renamed.items()}
    if len(set(renamed.values())) != len(renamed):
        raise ValueError(f"Duplicate columns after normalising: {list(df.columns)}")
    return df.rename(columns=renamed)


def read_csv_upload(uploaded_file) -> pd.DataFrame:
    return _normalise_cols(pd.read_csv(uploaded_file))


def record_to_frame(record: AcademicRecord) -> pd.DataFrame:
    rows = [
        {
            "Semester": sem.label,
            "Module": mod.name,
            "Credits": mod.credits,
            "Grade": grade_label(mod.grade_value),
            "Exempt": mod.is_exempt,
        }
        for sem in record.semesters
        for mod in sem.modules
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def record_to_csv(record: AcademicRecord) -> bytes:
    return record_to_frame(record).to_csv(index=False).encode("utf-8")


def parse_grade(value) -> float:
    """Grade cell as a letter (A+, B-, S, U, S/U) or a grade point."""
    text = str(value).strip().upper()
    if text in _GRADE_BY_LABEL:
        return _GRADE_BY_LABEL[text]
    if text == "S/U":
        return -1.0
    return as_grade(text)


def _parse_flag(value) -> bool:
    if pd.isna(value):
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_WORDS


def frame_to_record(df: pd.DataFrame) -> AcademicRecord:
    df = _normalise_cols(df)
    required = {"semester", "credits", "grade"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns: {sorted(missing)}. Expected: Semester, Module, Credits, Grade.")

    semesters = {}
    for _, row in df.iterrows():
        label, credit, grade = row.get("semester"), row.get("credits"), row.get("grade")
        if pd.isna(credit) or pd.isna(grade):
            continue
        label = "" if pd.isna(label) else str(label)
        name = row.get("module")
        grade_value = parse_grade(grade)

        if label not in semesters:
            semesters[label] = Semester(id=new_semester_id(list(semesters.values())), label=label)
        semesters[label].modules.append(Module(
            id=new_module_id(semesters[label].modules),
            name="" if name is None or pd.isna(name) else str(name),
            credits=as_credits(credit),
            grade_value=grade_value,
            is_exempt=_parse_flag(row.get("exempt")) or is_ungraded(grade_value),
        ))

    return AcademicRecord(semesters=list(semesters.values()))
