import json

from analyze_program_names import analyze, run_analysis


def test_analyze(make_pool, make_program):
    records = [
        make_pool("balboa", [
            make_program("Lap Swim", "Monday", "9:00a", "11:00a", original="LAP SWIM"),
            make_program("Lap Swim", "Tuesday", "9:00a", "11:00a", original="LAP SWIM"),
            make_program("Bubble Bath Hour", "Friday", "7:00p", "8:00p", original="bubble bath hour"),
        ]),
        make_pool("sava", [make_program("Lap Swim", "Monday", "6:00a", "8:00a", original="LAP SWIM")]),
    ]

    mapped, unmapped = analyze(records)

    assert mapped == [{"raw": "LAP SWIM", "display": "Lap Swim", "canonical": "Lap Swim", "count": 3}]
    assert unmapped == [{"raw": "bubble bath hour", "display": "Bubble Bath Hour", "canonical": None, "count": 1}]


def test_run_analysis_without_data(tmp_path):
    assert run_analysis(str(tmp_path / "all_schedules.json")) is None


def test_run_analysis_report(tmp_path, make_pool, make_program):
    path = tmp_path / "all_schedules.json"
    record = make_pool("rossi", [make_program("Family Swim", "Sunday", "1:00p", "3:00p", original="FAMILY SWIM")])
    path.write_text(json.dumps([record.to_dict()]), encoding="utf-8")

    report = run_analysis(str(path))

    assert "Unique raw program names: 1" in report
    assert "(1) Family Swim -> Family Swim" in report
