import math

import pytest

from gpa_calc.record import (
    AcademicRecord,
    Module,
    RecordStore,
    Semester,
    classify_honours,
    format_gpa,
    gpa,
    grade_label,
    graded_credits,
    next_semester_label,
    required_average_for_target,
    total_credits,
)


def test_empty_modules():
    assert gpa([]) == "0.00"
    assert total_credits([]) == 0
    assert graded_credits([]) == 0


def test_weighted_gpa():
    mods = [Module(id="a", credits=4, grade_value=5.0), Module(id="b", credits=4, grade_value=4.5)]
    assert gpa(mods) == "4.75"


def test_exempt_module_counts_for_credits_only():
    mods = [
        Module(id="a", credits=4, is_exempt=True),
        Module(id="b", credits=4, grade_value=4.0),
    ]
    assert gpa(mods) == "4.00"
    assert total_credits(mods) == 8
    assert graded_credits(mods) == 4


def test_exempt_grade_change_does_not_move_gpa():
    exempt = Module(id="a", credits=4, grade_value=5.0, is_exempt=True)
    mods = [exempt, Module(id="b", credits=6, grade_value=3.5)]
    before = (gpa(mods), total_credits(mods))
    for value in (0.0, 2.5, 4.5):
        exempt.grade_value = value
        assert (gpa(mods), total_credits(mods)) == before


def test_legacy_sentinel_is_not_counted():
    mods = [
        Module(id="a", credits=4, grade_value=-1.0),
        Module(id="b", credits=4, grade_value=3.0),
    ]
    assert gpa(mods) == "3.00"
    assert total_credits(mods) == 8


def test_only_ungraded_gives_zero():
    assert gpa([Module(id="a", credits=4, grade_value=-1.0)]) == "0.00"
    assert gpa([Module(id="a", credits=0, grade_value=5.0)]) == "0.00"


def test_gpa_rounding_two_places():
    mods = [Module(id="a", credits=2, grade_value=5.0), Module(id="b", credits=1, grade_value=4.0)]
    # 14 / 3 = 4.666...
    assert gpa(mods) == "4.67"
    assert format_gpa(4.125) == "4.13"
    assert format_gpa(3.0) == "3.00"


def test_fractional_and_negative_credits_accepted():
    mods = [Module(id="a", credits=2.5, grade_value=4.0), Module(id="b", credits=-1, grade_value=5.0)]
    assert total_credits(mods) == 1.5
    # (10 - 5) / 1.5
    assert gpa(mods) == "3.33"


def test_next_semester_label():
    assert next_semester_label([]) == "Year 1 Sem 1"
    assert next_semester_label([Semester(id="s", label="Year 1 Sem 1")]) == "Year 1 Sem 2"
    assert next_semester_label([Semester(id="s", label="Year 2 Sem 2")]) == "Year 3 Sem 1"
    assert next_semester_label([Semester(id="s", label="Special Term")]) == "Year 1 Sem 1"


def test_add_semester_sequence():
    store = RecordStore(AcademicRecord(semesters=[Semester(id="s1", label="Year 1 Sem 1")]))
    second = store.add_semester()
    third = store.add_semester()
    assert second.label == "Year 1 Sem 2"
    assert third.label == "Year 2 Sem 1"
    assert [s.id for s in store.semesters][0] == "s1"
    assert len({s.id for s in store.semesters}) == 3
    assert third.modules == []


def test_add_module_defaults(sample_record):
    store = RecordStore(sample_record)
    mod = store.add_module("sem-a")
    assert mod.credits == 4
    assert mod.grade_value == 5.0
    assert mod.is_exempt is False
    assert mod.name == ""
    assert store.semesters[0].modules[-1] is mod
    assert store.summary.total_credits == 20


def test_add_module_unknown_semester(sample_record):
    store = RecordStore(sample_record)
    assert store.add_module("nope") is None


def test_remove_operations_are_noops_when_missing(sample_record):
    store = RecordStore(sample_record)
    calls = []
    store.subscribe(lambda s: calls.append(s))
    store.remove_semester("nope")
    store.remove_module("sem-a", "nope")
    store.remove_module("nope", "m1")
    store.rename_semester("nope", "x")
    store.toggle_exempt("sem-a", "nope")
    assert calls == []
    assert len(store.semesters) == 2


def test_remove_semester_cascades(sample_record):
    store = RecordStore(sample_record)
    store.remove_semester("sem-a")
    assert [s.id for s in store.semesters] == ["sem-b"]
    assert store.summary.cumulative_gpa == "4.00"
    assert store.summary.total_credits == 8


def test_remove_module_keeps_order(sample_record):
    store = RecordStore(sample_record)
    store.add_module("sem-a")
    store.remove_module("sem-a", "m1")
    names = [m.name for m in store.semesters[0].modules]
    assert names == ["MA1521", ""]


def test_rename_semester_verbatim(sample_record):
    store = RecordStore(sample_record)
    store.rename_semester("sem-a", "  Exchange @ KTH ")
    assert store.semesters[0].label == "  Exchange @ KTH "
    assert store.summary.semesters[0].label == "  Exchange @ KTH "


def test_update_module_fields(sample_record):
    store = RecordStore(sample_record)
    store.update_module("sem-a", "m1", "name", "CS1101S")
    store.update_module("sem-a", "m1", "credits", "6")
    store.update_module("sem-a", "m1", "grade_value", 3.5)
    store.update_module("sem-a", "m2", "isExempt", True)
    m1, m2 = store.semesters[0].modules
    assert m1.name == "CS1101S"
    assert m1.credits == 6
    assert m1.grade_value == 3.5
    assert m2.is_exempt is True
    assert store.summary.semesters[0].gpa == "3.50"


def test_update_module_rejects_bad_values(sample_record):
    store = RecordStore(sample_record)
    with pytest.raises(ValueError):
        store.update_module("sem-a", "m1", "colour", "red")
    with pytest.raises(ValueError):
        store.update_module("sem-a", "m1", "grade_value", 4.2)
    with pytest.raises(ValueError):
        store.update_module("sem-a", "m1", "credits", "four")
    with pytest.raises(ValueError):
        store.update_module("sem-a", "m1", "is_exempt", "yes")
    assert store.semesters[0].modules[0].grade_value == 5.0


def test_toggle_exempt_keeps_grade(sample_record):
    store = RecordStore(sample_record)
    store.toggle_exempt("sem-a", "m1")
    mod = store.find_module("sem-a", "m1")
    assert mod.is_exempt is True
    assert mod.grade_value == 5.0
    assert store.summary.semesters[0].gpa == "4.50"
    assert store.summary.total_credits == 16
    assert store.summary.graded_credits == 8
    store.toggle_exempt("sem-a", "m1")
    assert store.summary.semesters[0].gpa == "4.75"


def test_summary_and_listeners(sample_record):
    store = RecordStore(sample_record)
    seen = []
    store.subscribe(lambda s: seen.append(s.summary.cumulative_gpa))
    assert store.summary.cumulative_gpa == "4.50"
    assert store.summary.total_credits == 16
    assert store.summary.graded_credits == 12
    assert [s.gpa for s in store.summary.semesters] == ["4.75", "4.00"]

    store.update_module("sem-b", "m3", "grade_value", 5.0)
    assert seen == ["4.83"]


def test_classify_honours():
    assert classify_honours("4.75") == "Honours (Highest Distinction)"
    assert classify_honours(4.0) == "Honours (Distinction)"
    assert classify_honours("3.49") == "Honours"
    assert classify_honours(2.0) == "Pass"
    assert classify_honours("0.00") == "Below Pass"


def test_grade_label():
    assert grade_label(5.0) == "A+"
    assert grade_label(3.5) == "B"
    assert grade_label(-1.0) == "S/U"


def test_required_average_for_target():
    mods = [Module(id="a", credits=20, grade_value=4.0)]
    # (4.5 * 40 - 4.0 * 20) / 20
    assert required_average_for_target(mods, 4.5, 20) == pytest.approx(5.0)
    assert required_average_for_target([], 3.0, 10) == pytest.approx(3.0)
    assert math.isnan(required_average_for_target(mods, 4.5, 0))


def test_credits_must_be_finite_and_bounded(sample_record):
    store = RecordStore(sample_record)
    for bad in (float("inf"), float("nan"), "1e308", 10 ** 6):
        with pytest.raises(ValueError):
            store.update_module("sem-a", "m1", "credits", bad)
    store.update_module("sem-a", "m1", "credits", -2)
    assert store.find_module("sem-a", "m1").credits == -2


def test_gpa_survives_overflowing_module():
    mods = [Module(id="a", credits=1e308, grade_value=5.0)]
    assert gpa(mods) == "0.00"


def test_module_ids_unique_within_semester(sample_record, monkeypatch):
    draws = iter([list("m1"), list("m2"), list("fresh")])
    monkeypatch.setattr("gpa_calc.record.random.choices", lambda population, k: next(draws))
    store = RecordStore(sample_record)
    mod = store.add_module("sem-a")
    assert mod.id == "fresh"
    assert len({m.id for m in store.semesters[0].modules}) == 3
