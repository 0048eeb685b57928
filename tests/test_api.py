import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from rfm_insights.customer_segmentation.segment_rules import AT_RISK, CHAMPIONS, LOYAL

from .helpers import make_csv, make_snapshot

USER = {"X-User-Id": "store-42"}


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as test_client:
        yield test_client


def _upload(client, csv_text, headers=USER, **params):
    return client.post(
        "/analyze",
        files={"file": ("march.csv", csv_text.encode("utf-8"), "text/csv")},
        params=params,
        headers=headers,
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_analyze_segments_the_upload(client, scenario_csv):
    response = _upload(client, scenario_csv)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["columnMap"] == {"customerId": "Customer ID", "date": "Date", "amount": "Amount"}
    assert body["segmentedData"][LOYAL]["customers"] == [
        {"id": "C1", "lastVisit": 1, "visits": 2, "spend": 150.0}
    ]
    assert body["rejectedRows"]["rejected"] == 1
    assert body["anchorDate"] == "2024-01-16"
    assert body["kpis"]["totalCustomers"] == 1
    assert body["defaultSegment"] == LOYAL
    assert body["locations"] == []
    assert body["locationLabel"] is None
    assert isinstance(body["historyId"], int)

    entries = client.get("/history", headers=USER).json()
    assert [e["id"] for e in entries] == [body["historyId"]]
    assert entries[0]["file_name"] == "march.csv"


def test_analyze_without_saving(client, scenario_csv):
    body = _upload(client, scenario_csv, save=False).json()

    assert body["historyId"] is None
    assert client.get("/history", headers=USER).json() == []


def test_location_scoped_analysis_is_not_saved(client):
    csv_text = make_csv([
        ("A", "01/01/2024", "10", "North"),
        ("B", "02/01/2024", "10", "South"),
    ], header="Customer ID,Date,Sales,Store")

    body = _upload(client, csv_text, location="South").json()

    assert body["location"] == "South"
    assert body["locations"] == ["North", "South"]
    assert body["locationLabel"] == "Store"
    assert body["historyId"] is None


def test_analyze_rejects_files_without_required_columns(client):
    response = _upload(client, make_csv([("C1", "5")], header="Customer ID,Amount"))

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Upload failed")


def test_analyze_rejects_non_utf8_content(client):
    response = client.post(
        "/analyze",
        files={"file": ("bad.csv", b"Customer ID,Date,Amount\n\xff\xfe,01/01/2024,1\n", "text/csv")},
        headers=USER,
    )

    assert response.status_code == 400


def test_user_header_is_required(client, scenario_csv):
    assert _upload(client, scenario_csv, headers={}).status_code == 422
    assert client.get("/settings").status_code == 422


def test_settings_round_trip(client):
    assert client.get("/settings", headers=USER).json() == {
        "championRecency": 30,
        "championFrequency": 5,
        "atRiskRecency": 90,
    }

    response = client.post("/settings", json={"atRiskRecency": 60}, headers=USER)

    assert response.status_code == 200
    assert response.json()["settings"]["atRiskRecency"] == 60
    assert client.get("/settings", headers=USER).json()["atRiskRecency"] == 60
    assert client.get("/settings", headers={"X-User-Id": "someone-else"}).json()["atRiskRecency"] == 90


def test_settings_apply_to_later_uploads(client):
    csv_text = make_csv([
        ("A", "01/01/2024", "10"),
        ("A", "02/01/2024", "10"),
        ("B", "01/06/2024", "10"),
    ])
    assert _upload(client, csv_text, save=False).json()["segmentedData"][AT_RISK]["customers"][0]["id"] == "A"

    client.post("/settings", json={"atRiskRecency": 200}, headers=USER)

    body = _upload(client, csv_text, save=False).json()
    assert [c["id"] for c in body["segmentedData"][LOYAL]["customers"]] == ["A"]


def test_invalid_settings_are_rejected(client):
    response = client.post("/settings", json={"championRecency": "soon"}, headers=USER)

    assert response.status_code == 422
    assert client.get("/settings", headers=USER).json()["championRecency"] == 30


def test_history_crud(client):
    snapshot = make_snapshot({CHAMPIONS: 2}).to_dict()

    created = client.post("/history", json={
        "fileName": "jan.csv",
        "analysisDate": "2024-01-31T10:00:00",
        "segmentedData": snapshot,
    }, headers=USER)

    assert created.status_code == 201
    history_id = created.json()["id"]
    assert client.get(f"/history/{history_id}", headers=USER).json() == {"segmentedData": snapshot}
    assert client.get(f"/history/{history_id}", headers={"X-User-Id": "other"}).status_code == 404

    cleared = client.delete("/history", headers=USER)
    assert cleared.json()["removed"] == 1
    assert client.get(f"/history/{history_id}", headers=USER).status_code == 404


def test_history_rejects_malformed_snapshots(client):
    response = client.post("/history", json={
        "fileName": "jan.csv",
        "analysisDate": "2024-01-31T10:00:00",
        "segmentedData": {CHAMPIONS: {"customers": [{"id": "C1"}]}},
    }, headers=USER)

    assert response.status_code == 422


def test_compare_against_stored_analysis(client):
    historical = make_snapshot({CHAMPIONS: 100}, spend=10.0).to_dict()
    history_id = client.post("/history", json={
        "fileName": "jan.csv",
        "analysisDate": "2024-01-31T10:00:00",
        "segmentedData": historical,
    }, headers=USER).json()["id"]

    current = make_snapshot({CHAMPIONS: 120, AT_RISK: 0}, spend=10.0).to_dict()
    response = client.post(f"/history/{history_id}/compare", json={"segmentedData": current}, headers=USER)

    assert response.status_code == 200
    deltas = response.json()["deltas"]
    assert deltas["totalCustomers"] == pytest.approx(20.0)
    assert deltas["championCount"] == pytest.approx(20.0)
    assert "atRiskCount" not in deltas


def test_compare_with_unknown_history(client):
    response = client.post("/history/999/compare", json={"segmentedData": {}}, headers=USER)

    assert response.status_code == 404


def test_explore(client):
    snapshot = make_snapshot({CHAMPIONS: 1, LOYAL: 3}).to_dict()

    response = client.post("/explore", json={"segmentedData": snapshot, "idContains": "c4"})

    body = response.json()
    assert body["segment"] == LOYAL
    assert [c["id"] for c in body["customers"]] == ["C4"]
    assert set(body["customers"][0]) == {"id", "lastVisit", "visits", "spend"}


def test_analyze_accepts_ragged_and_badly_quoted_rows(client):
    text = (
        "Customer ID,Date,Amount\n"
        "C1,01/01/2024,100\n"
        "C1,15/01/2024,50\n"
        "C2,02/01/2024,1,234.50\n"
        'C3,03/01/2024,"7\n'
    )

    response = _upload(client, text, save=False)

    assert response.status_code == 200
    loyal = response.json()["segmentedData"][LOYAL]["customers"]
    assert [c["id"] for c in loyal] == ["C1"]
