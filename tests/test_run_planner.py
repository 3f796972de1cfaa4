import json

from defaults import baseline_project
from run_planner import main
from table_export import load_project, project_to_dict
from table_import import load_table


def test_sample_then_summary(tmp_path, capsys):
    out = tmp_path / "sample.csv"
    assert main(["sample", "--out", str(out)]) == 0
    assert out.exists()

    assert main(["summary", "--table", str(out)]) == 0
    printed = capsys.readouterr().out
    assert "Timeline: Jan 2022 - Dec 2025 (48 months)" in printed
    assert "Departments: 7" in printed


def test_convert_to_project_and_back(tmp_path):
    src = tmp_path / "sample.csv"
    main(["sample", "--out", str(src)])
    project = tmp_path / "plan.json"
    assert main(["convert", "--src", str(src), "--out", str(project)]) == 0
    back = tmp_path / "plan.xlsx"
    assert main(["convert", "--src", str(project), "--out", str(back)]) == 0
    assert load_table(back) == load_project(project)


def test_normalize_regenerates_curves(tmp_path):
    src = tmp_path / "plan.csv"
    src.write_text(",2024\n,Jan,Feb,Mar,Apr\nLayout,2,5,3,1\n", encoding="utf-8")
    out = tmp_path / "clean.json"
    assert main(["normalize", "--src", str(src), "--out", str(out)]) == 0
    dept = load_project(out).departments[0]
    assert dept.provenance.value == "derived"
    assert dept.crew == [5, 5, 3, 0]


def test_malformed_table_exit_code(tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("2024\n", encoding="utf-8")
    assert main(["summary", "--table", str(bad)]) == 2


def test_no_command(capsys):
    assert main([]) == 1


def test_project_outside_timeline_exit_code(tmp_path):
    data = project_to_dict(baseline_project())
    data["departments"][0]["end_month"] = 99
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(data), encoding="utf-8")
    assert main(["summary", "--table", str(bad)]) == 2
