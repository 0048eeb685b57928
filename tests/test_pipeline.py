import json
from datetime import date

import pytest

from rfm_insights.customer_segmentation import ColumnMappingFailed, SegmentSettings
from rfm_insights.customer_segmentation.segment_rules import (
    AT_RISK,
    CHAMPIONS,
    LOYAL,
    NEW,
    SEGMENT_ORDER,
)
from rfm_insights.common import Reporter
from rfm_insights.pipeline import AnalysisResult, RFMAnalysisPipeline

from .helpers import make_csv

REGION_HEADER = "Customer ID,Order Date,Sales,Region"


@pytest.fixture
def pipeline():
    return RFMAnalysisPipeline()


def test_repeat_buyer_lands_in_loyal_and_bad_row_is_dropped(pipeline, scenario_csv):
    result = pipeline.analyze_csv(scenario_csv, SegmentSettings())

    assert isinstance(result, AnalysisResult)
    assert result.anchor_date == date(2024, 1, 16)
    assert result.snapshot.customer_ids() == {"C1"}

    loyal = result.snapshot.get(LOYAL).customers
    assert len(loyal) == 1
    assert loyal[0].model_dump(by_alias=True) == {
        'id': "C1", 'lastVisit': 1, 'visits': 2, 'spend': 150.0,
    }
    assert result.rejections.to_dict() == {
        'totalRows': 3,
        'accepted': 2,
        'rejected': 1,
        'reasons': {'invalid_amount': 1},
    }


def test_result_dict_has_column_map_and_all_segments(pipeline, scenario_csv):
    payload = pipeline.analyze_csv(scenario_csv).to_dict()

    assert payload['columnMap'] == {'customerId': "Customer ID", 'date': "Date", 'amount': "Amount"}
    assert list(payload['segmentedData']) == list(SEGMENT_ORDER)
    assert payload['segmentedData'][CHAMPIONS]['customers'] == []


def test_bytes_with_byte_order_mark(pipeline, scenario_csv):
    result = pipeline.analyze_csv(("\ufeff" + scenario_csv).encode("utf-8"))

    assert isinstance(result, AnalysisResult)
    assert result.snapshot.count(LOYAL) == 1


def test_missing_required_column(pipeline):
    result = pipeline.analyze_csv(make_csv([("C1", "01/01/2024")], header="Customer ID,Date"))

    assert isinstance(result, ColumnMappingFailed)
    assert result.missing == ('amount',)


def test_no_valid_rows_gives_empty_segments(pipeline):
    result = pipeline.analyze_csv(make_csv([("C1", "not a date", "5")]))

    assert isinstance(result, AnalysisResult)
    assert result.snapshot.is_empty
    assert list(result.snapshot.segments) == list(SEGMENT_ORDER)
    assert result.anchor_date is None


def test_settings_are_applied(pipeline):
    csv_text = make_csv([
        ("A", "01/01/2024", "10"),
        ("A", "02/01/2024", "10"),
        ("B", "01/06/2024", "10"),
    ])

    default_run = pipeline.analyze_csv(csv_text, SegmentSettings())

    # A's last visit is 152 days before the anchor
    assert [c.id for c in default_run.snapshot.get(AT_RISK).customers] == ["A"]
    assert [c.id for c in default_run.snapshot.get(NEW).customers] == ["B"]

    lenient_run = pipeline.analyze_csv(csv_text, SegmentSettings(at_risk_recency=200))
    assert [c.id for c in lenient_run.snapshot.get(LOYAL).customers] == ["A"]


def test_location_filter(pipeline):
    csv_text = make_csv([
        ("A", "01/01/2024", "10", "North"),
        ("B", "05/01/2024", "10", "South"),
        ("C", "03/01/2024", "10", ""),
    ], header=REGION_HEADER)
    df = pipeline.loader.read_csv_text(csv_text)

    result = pipeline.analyze_frame(df, location="North")

    assert result.location == "North"
    assert result.snapshot.customer_ids() == {"A"}
    # anchor follows the filtered rows
    assert result.anchor_date == date(2024, 1, 2)
    assert pipeline.list_locations(df, result.column_map) == ["North", "South"]
    assert result.column_map.location.label == "Region"


@pytest.mark.parametrize("location", [None, "", "all"])
def test_all_locations_keeps_every_row(pipeline, location):
    csv_text = make_csv([
        ("A", "01/01/2024", "10", "North"),
        ("B", "05/01/2024", "10", "South"),
    ], header=REGION_HEADER)

    result = pipeline.analyze_csv(csv_text, location=location)

    assert result.location is None
    assert result.snapshot.customer_ids() == {"A", "B"}


def test_location_is_ignored_without_a_location_column(pipeline, scenario_csv):
    result = pipeline.analyze_csv(scenario_csv, location="North")

    assert result.location is None
    assert result.snapshot.customer_ids() == {"C1"}
    df = pipeline.loader.read_csv_text(scenario_csv)
    assert pipeline.list_locations(df, result.column_map) == []


def test_reporter_writes_csv_and_json(tmp_path, pipeline, scenario_csv):
    result = pipeline.analyze_csv(scenario_csv)
    reporter = Reporter(output_dir=str(tmp_path / "reports"))

    paths = reporter.generate_segmentation_report({
        'file_name': "scenario.csv",
        'column_map': result.column_map.to_dict(),
        'segmented_data': result.snapshot.to_dict(),
        'rejected_rows': result.rejections.to_dict(),
    }, "scenario")

    table = paths['csv'].read_text().splitlines()
    assert table[0] == "segment,id,lastVisit,visits,spend"
    assert table[1] == "Loyal Customers,C1,1,2,150.0"

    document = json.loads(paths['json'].read_text())
    assert document['file_name'] == "scenario.csv"
    assert document['rejected_rows']['rejected'] == 1
    assert document['segmentedData'][LOYAL]['customers'][0]['id'] == "C1"


def test_row_with_an_unquoted_thousands_separator_is_kept(pipeline):
    text = "Customer ID,Date,Amount\nC1,01/01/2024,100\nC1,15/01/2024,50\nC2,02/01/2024,1,234.50\n"

    result = pipeline.analyze_csv(text)

    assert isinstance(result, AnalysisResult)
    assert result.snapshot.customer_ids() == {"C1", "C2"}
    assert result.snapshot.get(NEW).customers[0].spend == 1.0
    assert result.rejections.rejected == 0


def test_ragged_rows_throughout_the_file_keep_their_columns(pipeline):
    text = "Customer ID,Date,Amount\nC1,01/01/2024,100,x\nC1,15/01/2024,50,y\n"

    result = pipeline.analyze_csv(text)

    assert isinstance(result, AnalysisResult)
    assert [c.id for c in result.snapshot.get(LOYAL).customers] == ["C1"]
    assert result.snapshot.get(LOYAL).customers[0].spend == 150.0
    assert result.rejections.to_dict()['reasons'] == {}


def test_unterminated_quote_does_not_fail_the_run(pipeline):
    text = 'Customer ID,Date,Amount\nC1,01/01/2024,100\nC1,15/01/2024,50\nC2,01/01/2024,"7\n'

    result = pipeline.analyze_csv(text)

    assert isinstance(result, AnalysisResult)
    loyal = result.snapshot.get(LOYAL).customers
    assert [(c.id, c.visits, c.spend) for c in loyal] == [("C1", 2, 150.0)]


def test_numeric_customer_ids_keep_file_order(pipeline):
    text = make_csv([
        ("100", "01/01/2024", "10"),
        ("20", "02/01/2024", "10"),
        ("abc", "03/01/2024", "10"),
        ("3", "04/01/2024", "10"),
    ])

    result = pipeline.analyze_csv(text)

    assert [c.id for c in result.snapshot.get(NEW).customers] == ["100", "20", "abc", "3"]
