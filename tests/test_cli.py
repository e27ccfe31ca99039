"""Tests for the command-line interface."""

import pandas as pd
import pytest

from autoroster.cli import build_parser, main


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'roster.db'}"


@pytest.fixture
def store_csvs(tmp_path):
    files = {
        "departments": "department_id,name\n1,Front\n",
        "employees": "employee_id,first_name,last_name,department_id,skills\n1,Ana,Reyes,1,cashier\n2,Ben,Okafor,1,cashier\n",
        "roles": "role_id,department_id,name,required_skill\n1,1,Cashier,cashier\n",
        "templates": "role_id,day_of_week,start_time,end_time\n"
        + "".join(f"1,{d},09:00,17:00\n" for d in range(5)),
    }
    paths = {}
    for name, content in files.items():
        paths[name] = tmp_path / f"{name}.csv"
        paths[name].write_text(content)
    return paths


def _load(db_url, store_csvs):
    assert main(["--db", db_url, "init-db"]) == 0
    argv = ["--db", db_url, "import-csv"]
    for name, path in store_csvs.items():
        argv += [f"--{name}", str(path)]
    assert main(argv) == 0


@pytest.mark.integration
def test_generate_list_validate_export(db_url, store_csvs, tmp_path, capsys):
    _load(db_url, store_csvs)
    out = capsys.readouterr().out
    assert "[OK] Imported 2 employees" in out
    assert "[OK] Imported 5 templates" in out

    week = ["--start", "2025-09-01", "--end", "2025-09-05"]
    generated = tmp_path / "generated.csv"
    assert main(["--db", db_url, "generate", *week, "--department", "1", "--out", str(generated)]) == 0
    out = capsys.readouterr().out
    assert "[OK] Generated 5 assignments for 2025-09-01..2025-09-05" in out
    assert "[WARN]" not in out
    assert len(pd.read_csv(generated)) == 5

    assert main(["--db", db_url, "list", *week, "--employee", "2"]) == 0
    out = capsys.readouterr().out
    assert "emp=2" in out
    assert "emp=1" not in out

    assert main(["--db", db_url, "validate", *week, "--department", "1", "--summary"]) == 0
    out = capsys.readouterr().out
    assert "[OK] Validation passed" in out
    assert "Hours per employee:" in out

    exported = tmp_path / "export.csv"
    assert main(["--db", db_url, "export", "--assignments", str(exported), "--status", "confirmed"]) == 0
    assert len(pd.read_csv(exported)) == 0


def test_generate_reports_unfilled(db_url, store_csvs, capsys):
    store_csvs["employees"].write_text("employee_id,first_name,last_name,department_id,skills\n1,Ana,Reyes,1,stock\n")
    _load(db_url, store_csvs)
    capsys.readouterr()

    assert main(["--db", db_url, "generate", "--start", "2025-09-01", "--end", "2025-09-01", "--department", "1"]) == 0
    out = capsys.readouterr().out
    assert "[OK] Generated 0 assignments" in out
    assert "[WARN] Unfilled: role 1 on 2025-09-01 09:00-17:00 missing 1" in out


def test_generate_errors_return_nonzero(db_url, store_csvs, capsys):
    _load(db_url, store_csvs)
    capsys.readouterr()
    assert main(["--db", db_url, "generate", "--start", "2025-09-05", "--end", "2025-09-01", "--department", "1"]) == 1
    assert "[ERROR] Generation failed" in capsys.readouterr().out


def test_bad_config_file(db_url, tmp_path, capsys):
    cfg = tmp_path / "config.yaml"
    cfg.write_text("search:\n  solver: genetic\n")
    assert main(["--db", db_url, "--config", str(cfg), "init-db"]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_parser_rejects_bad_dates():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["generate", "--department", "1", "--start", "01/09/2025"])
