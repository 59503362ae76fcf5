import os
import sys

import pytest

# Ensure repo root on sys.path for imports like `gpa_calc...`
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from gpa_calc.record import AcademicRecord, Module, Semester  # noqa: E402


@pytest.fixture
def sample_record():
    return AcademicRecord(semesters=[
        Semester(id="sem-a", label="Year 1 Sem 1", modules=[
            Module(id="m1", name="CS1010", credits=4, grade_value=5.0),
            Module(id="m2", name="MA1521", credits=4, grade_value=4.5),
        ]),
        Semester(id="sem-b", label="Year 1 Sem 2", modules=[
            Module(id="m3", name="CS2030", credits=4, grade_value=4.0),
            Module(id="m4", name="GEA1000", credits=4, grade_value=3.0, is_exempt=True),
        ]),
    ])
