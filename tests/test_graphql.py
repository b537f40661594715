from __future__ import annotations

from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from tests.fakes import FakeMetricRepository


def _graphql(client: TestClient, query: str, **variables) -> dict:
    resp = client.post("/graphql", json={"query": query, "variables": variables})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_metrics_page_with_filters_and_sorting(
    client: TestClient, repo: FakeMetricRepository, day: datetime
) -> None:
    for i in range(12):
        repo.add(type="energy", name=f"meter-{i:02d}", created_at=day + timedelta(minutes=i), payload={"kw": i})
    repo.add(type="motion", name="meter-x", created_at=day, payload={})

    body = _graphql(
        client,
        """
        query ($where: MetricFilterInput) {
          metrics(where: $where, sortBy: "Name", sortOrder: "asc", page: 2, pageSize: 5) {
            items { id type name payload createdAt }
            totalCount page pageSize totalPages
          }
        }
        """,
        where={"type": "energy", "name": "meter"},
    )

    assert "errors" not in body
    page = body["data"]["metrics"]
    assert page["totalCount"] == 12
    assert page["totalPages"] == 3
    assert (page["page"], page["pageSize"]) == (2, 5)
    assert [item["name"] for item in page["items"]] == [f"meter-{i:02d}" for i in range(5, 10)]
    assert page["items"][0]["payload"] == {"kw": 5}


def test_metric_by_id(client: TestClient, repo: FakeMetricRepository, day: datetime) -> None:
    record = repo.add(type="motion", name="hall", created_at=day, payload="{broken")
    query = "query ($id: Int!) { metricById(id: $id) { id name payload } }"

    assert _graphql(client, query, id=record.id)["data"]["metricById"] == {
        "id": record.id,
        "name": "hall",
        "payload": {},
    }
    assert _graphql(client, query, id=999)["data"]["metricById"] is None


def test_metrics_by_type_newest_first(
    client: TestClient, repo: FakeMetricRepository, day: datetime
) -> None:
    older = repo.add(type="motion", name="a", created_at=day, payload={})
    repo.add(type="energy", name="b", created_at=day, payload={})
    newer = repo.add(type="motion", name="c", created_at=day + timedelta(hours=1), payload={})

    body = _graphql(client, '{ metricsByType(type: "motion") { id } }')

    assert [m["id"] for m in body["data"]["metricsByType"]] == [newer.id, older.id]


def test_metrics_aggregation_and_types(
    client: TestClient, repo: FakeMetricRepository, day: datetime
) -> None:
    repo.add(type="motion", name="a", created_at=day, payload={})
    repo.add(type="energy", name="b", created_at=day, payload={})
    repo.add(type="motion", name="c", created_at=day, payload={})

    body = _graphql(
        client,
        "{ metricsAggregation { totalCount typeAggregations { type count } } metricTypes }",
    )

    assert body["data"]["metricsAggregation"] == {
        "totalCount": 3,
        "typeAggregations": [
            {"type": "motion", "count": 2},
            {"type": "energy", "count": 1},
        ],
    }
    assert body["data"]["metricTypes"] == ["energy", "motion"]


def test_daily_average_metrics(
    client: TestClient, repo: FakeMetricRepository, day: datetime
) -> None:
    repo.add(type="temperature", name="lab", created_at=day + timedelta(hours=1), payload={"c": 20})
    repo.add(type="temperature", name="lab", created_at=day + timedelta(hours=2), payload={"c": "22"})
    repo.add(type="humidity", name="lab", created_at=day + timedelta(days=1), payload={"rh": 40})

    body = _graphql(
        client,
        """
        query ($fromDate: DateTime!, $toDate: DateTime!) {
          dailyAverageMetrics(fromDate: $fromDate, toDate: $toDate, type: "temperature") {
            date type name count averageValues
          }
        }
        """,
        fromDate=day.isoformat(),
        toDate=(day + timedelta(days=1)).isoformat(),
    )

    assert body["data"]["dailyAverageMetrics"] == [
        {"date": "2026-03-01", "type": "temperature", "name": "lab", "count": 2, "averageValues": {"c": 21.0}},
    ]


def test_invalid_arguments_are_graphql_errors(client: TestClient, day: datetime) -> None:
    body = _graphql(client, "{ metrics(pageSize: 500) { totalCount } }")
    assert body["data"] is None
    assert "page_size" in body["errors"][0]["message"]

    body = _graphql(
        client,
        """
        query ($fromDate: DateTime!, $toDate: DateTime!) {
          dailyAverageMetrics(fromDate: $fromDate, toDate: $toDate) { count }
        }
        """,
        fromDate=(day + timedelta(days=2)).isoformat(),
        toDate=day.isoformat(),
    )
    assert body["data"] is None
    assert "toDate must be greater than or equal to fromDate" in body["errors"][0]["message"]

    body = _graphql(client, "{ metricById(id: 0) { id } }")
    assert body["errors"]


def test_storage_failure_is_reported(client: TestClient, repo: FakeMetricRepository) -> None:
    repo.fail_with = OSError("connection refused")

    body = _graphql(client, "{ metricTypes }")

    assert body["data"] is None
    assert "Metrics storage unavailable" in body["errors"][0]["message"]
