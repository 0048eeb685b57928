import json
from argparse import Namespace

from run_analytics import run_segmentation

from .helpers import make_csv


def _args(tmp_path, data, **overrides):
    values = dict(
        data=str(data),
        output=str(tmp_path / "out"),
        location=None,
        user="default",
        user_settings=False,
        save=False,
        compare_with=None,
    )
    values.update(overrides)
    return Namespace(**values)


def test_run_writes_reports(tmp_path, config, scenario_csv):
    data = tmp_path / "scenario.csv"
    data.write_text(scenario_csv)

    assert run_segmentation(_args(tmp_path, data), config) == 0

    reports = sorted((tmp_path / "out").glob("scenario_*.json"))
    assert len(reports) == 1
    document = json.loads(reports[0].read_text())
    assert document['kpis']['totalCustomers'] == 1
    assert document['rejected_rows']['reasons'] == {'invalid_amount': 1}


def test_run_fails_on_unmappable_file(tmp_path, config):
    data = tmp_path / "bad.csv"
    data.write_text(make_csv([("x", "y")], header="Foo,Bar"))

    assert run_segmentation(_args(tmp_path, data), config) == 1


def test_save_then_compare(tmp_path, config, scenario_csv):
    data = tmp_path / "scenario.csv"
    data.write_text(scenario_csv)

    assert run_segmentation(_args(tmp_path, data, save=True), config) == 0
    assert run_segmentation(_args(tmp_path, data, compare_with=1), config) == 0

    reports = sorted((tmp_path / "out").glob("scenario_*.json"))
    comparison = json.loads(reports[-1].read_text())['comparison']
    assert comparison['deltas']['totalCustomers'] == 0.0


def test_compare_with_unknown_history_fails(tmp_path, config, scenario_csv):
    data = tmp_path / "scenario.csv"
    data.write_text(scenario_csv)

    assert run_segmentation(_args(tmp_path, data, compare_with=42), config) == 1
