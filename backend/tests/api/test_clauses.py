"""Tests for clause API endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from app.core.errors import (
    BillNotFoundError,
    ClauseDeletionBlockedError,
    ClauseNotFoundError,
    ClauseNotFoundInBillError,
    ClauseValidationError,
    NoPdfAttachedError,
    PersistenceError,
)
from app.models.bill import BillClause
from app.models.enums import ClauseType, OrphanPolicy
from app.schemas.clause import (
    ClauseAnalyticsSchema,
    ClauseDetailSchema,
    ClausePathEntrySchema,
    ClauseSchema,
    ClauseTreeSchema,
)
from pipeline.pdf.text_extractor import ExtractionError


def make_schema(clause_id: int = 10, **overrides: object) -> ClauseSchema:
    fields: dict[str, object] = {
        "clause_id": clause_id,
        "bill_id": 1,
        "clause_number": "5",
        "full_number": "5",
        "clause_type": ClauseType.SECTION,
        "parent_clause_id": None,
        "title": "Offences",
        "content": "A person commits an offence if",
        "metadata": {"line_start": 2},
        "display_order": 1,
    }
    fields.update(overrides)
    return ClauseSchema(**fields)


# ---------------------------------------------------------------------------
# GET /api/v1/bills/{bill_id}/clauses
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.list_clause_trees", new_callable=AsyncMock)
def test_list_clauses(mock_list: AsyncMock, client: TestClient) -> None:
    """Listing returns top-level clauses with their children."""
    child = make_schema(
        11,
        clause_number="1",
        full_number="5.1",
        clause_type=ClauseType.SUBSECTION,
        parent_clause_id=10,
        title=None,
        content="they fail to register",
        display_order=2,
    )
    mock_list.return_value = [
        ClauseTreeSchema(**make_schema().model_dump(), children=[child])
    ]

    response = client.get("/api/v1/bills/1/clauses")
    assert response.status_code == 200

    data = response.json()
    assert len(data) == 1
    assert data[0]["clause_type"] == "section"
    assert data[0]["full_number"] == "5"
    assert data[0]["metadata"] == {"line_start": 2}
    assert data[0]["children"][0]["full_number"] == "5.1"
    assert data[0]["children"][0]["parent_clause_id"] == 10
    mock_list.assert_awaited_once()
    assert mock_list.call_args.args[1] == 1


@patch("app.api.v1.clauses.list_clause_trees", new_callable=AsyncMock)
def test_list_clauses_unknown_bill(mock_list: AsyncMock, client: TestClient) -> None:
    mock_list.side_effect = BillNotFoundError(99)

    response = client.get("/api/v1/bills/99/clauses")
    assert response.status_code == 404
    assert response.json()["detail"] == "Bill 99 not found"


# ---------------------------------------------------------------------------
# GET /api/v1/bills/{bill_id}/clauses/{clause_id}
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.get_clause_detail", new_callable=AsyncMock)
def test_get_clause(mock_detail: AsyncMock, client: TestClient) -> None:
    mock_detail.return_value = ClauseDetailSchema(
        **make_schema().model_dump(),
        analytics=ClauseAnalyticsSchema(
            submissions_count=4,
            support_count=3,
            oppose_count=1,
            support_percentage=75.0,
            oppose_percentage=25.0,
        ),
        path=[
            ClausePathEntrySchema(
                clause_id=10,
                clause_number="5",
                clause_type=ClauseType.SECTION,
                title="Offences",
            )
        ],
    )

    response = client.get("/api/v1/bills/1/clauses/10")
    assert response.status_code == 200

    data = response.json()
    assert data["parent"] is None
    assert data["children"] == []
    assert data["analytics"]["support_percentage"] == 75.0
    assert data["analytics"]["dominant_sentiment"] == "support"
    assert data["path"][0]["clause_number"] == "5"


@patch("app.api.v1.clauses.get_clause_detail", new_callable=AsyncMock)
def test_get_clause_not_found(mock_detail: AsyncMock, client: TestClient) -> None:
    mock_detail.side_effect = ClauseNotFoundError(10)

    response = client.get("/api/v1/bills/1/clauses/10")
    assert response.status_code == 404
    assert response.json()["detail"] == "Clause 10 not found"


@patch("app.api.v1.clauses.get_clause_detail", new_callable=AsyncMock)
def test_get_clause_of_other_bill(mock_detail: AsyncMock, client: TestClient) -> None:
    """A clause addressed through the wrong bill is a distinct 404."""
    mock_detail.side_effect = ClauseNotFoundInBillError(10, 2)

    response = client.get("/api/v1/bills/2/clauses/10")
    assert response.status_code == 404
    assert response.json()["detail"] == "Clause 10 does not belong to bill 2"


# ---------------------------------------------------------------------------
# POST /api/v1/bills/{bill_id}/clauses/parse
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.ClauseParsingService")
def test_parse_clauses(mock_service_cls: MagicMock, client: TestClient) -> None:
    mock_service_cls.return_value.parse_bill_clauses = AsyncMock(
        return_value=[
            BillClause(
                clause_id=1,
                bill_id=1,
                clause_number="1",
                clause_type=ClauseType.SECTION,
                title="Short title",
                content="This Act may be cited as...",
                clause_metadata={"line_start": 0},
                display_order=0,
            ),
            BillClause(
                clause_id=2,
                bill_id=1,
                clause_number="1",
                clause_type=ClauseType.SUBSECTION,
                parent_clause_id=1,
                content="In this Act",
                clause_metadata={"line_start": 2},
                display_order=1,
            ),
        ]
    )

    response = client.post("/api/v1/bills/1/clauses/parse")
    assert response.status_code == 200

    data = response.json()
    assert data["bill_id"] == 1
    assert data["count"] == 2
    assert [c["full_number"] for c in data["clauses"]] == ["1", "1.1"]
    mock_service_cls.return_value.parse_bill_clauses.assert_awaited_once_with(1)


@patch("app.api.v1.clauses.ClauseParsingService")
def test_parse_without_pdf(mock_service_cls: MagicMock, client: TestClient) -> None:
    mock_service_cls.return_value.parse_bill_clauses = AsyncMock(
        side_effect=NoPdfAttachedError(1)
    )

    response = client.post("/api/v1/bills/1/clauses/parse")
    assert response.status_code == 409
    assert response.json()["detail"] == "Bill 1 has no PDF file attached"


@patch("app.api.v1.clauses.ClauseParsingService")
def test_parse_extraction_error(mock_service_cls: MagicMock, client: TestClient) -> None:
    mock_service_cls.return_value.parse_bill_clauses = AsyncMock(
        side_effect=ExtractionError(
            "PDF contains no extractable text. May be scanned or image-based."
        )
    )

    response = client.post("/api/v1/bills/1/clauses/parse")
    assert response.status_code == 422
    assert "no extractable text" in response.json()["detail"]


@patch("app.api.v1.clauses.ClauseParsingService")
def test_parse_persistence_error(mock_service_cls: MagicMock, client: TestClient) -> None:
    mock_service_cls.return_value.parse_bill_clauses = AsyncMock(
        side_effect=PersistenceError("Replacing clauses for bill 1 failed")
    )

    response = client.post("/api/v1/bills/1/clauses/parse")
    assert response.status_code == 503


# ---------------------------------------------------------------------------
# POST /api/v1/bills/{bill_id}/clauses
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.describe_clause", new_callable=AsyncMock)
@patch("app.api.v1.clauses.add_clause", new_callable=AsyncMock)
def test_create_clause(
    mock_add: AsyncMock, mock_describe: AsyncMock, client: TestClient
) -> None:
    mock_describe.return_value = make_schema(
        12, clause_number="6", full_number="6", title="Regulations", display_order=5
    )

    response = client.post(
        "/api/v1/bills/1/clauses",
        json={
            "clause_number": "6",
            "clause_type": "section",
            "title": "Regulations",
            "content": "The Cabinet Secretary may make regulations.",
        },
    )
    assert response.status_code == 201
    assert response.json()["display_order"] == 5

    payload = mock_add.call_args.args[2]
    assert payload.clause_type == ClauseType.SECTION
    assert payload.parent_clause_id is None


def test_create_clause_missing_content(client: TestClient) -> None:
    response = client.post(
        "/api/v1/bills/1/clauses",
        json={"clause_number": "6", "clause_type": "section"},
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["body", "content"]


def test_create_clause_invalid_type(client: TestClient) -> None:
    response = client.post(
        "/api/v1/bills/1/clauses",
        json={"clause_number": "6", "clause_type": "chapter", "content": "x"},
    )
    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"] == ["body", "clause_type"]


@patch("app.api.v1.clauses.add_clause", new_callable=AsyncMock)
def test_create_clause_dangling_parent(mock_add: AsyncMock, client: TestClient) -> None:
    mock_add.side_effect = ClauseValidationError(
        {"parent_clause_id": "Clause 999 does not exist in bill 1"}
    )

    response = client.post(
        "/api/v1/bills/1/clauses",
        json={
            "clause_number": "1",
            "clause_type": "subsection",
            "parent_clause_id": 999,
            "content": "x",
        },
    )
    assert response.status_code == 422
    assert response.json()["detail"] == [
        {
            "loc": ["body", "parent_clause_id"],
            "msg": "Clause 999 does not exist in bill 1",
            "type": "value_error",
        }
    ]


# ---------------------------------------------------------------------------
# PATCH /api/v1/bills/{bill_id}/clauses/{clause_id}
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.describe_clause", new_callable=AsyncMock)
@patch("app.api.v1.clauses.update_clause", new_callable=AsyncMock)
def test_update_clause(
    mock_update: AsyncMock, mock_describe: AsyncMock, client: TestClient
) -> None:
    mock_describe.return_value = make_schema(title="Offences and penalties")

    response = client.patch(
        "/api/v1/bills/1/clauses/10", json={"title": "Offences and penalties"}
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Offences and penalties"

    _, bill_id, clause_id, payload = mock_update.call_args.args
    assert (bill_id, clause_id) == (1, 10)
    assert payload.model_dump(exclude_unset=True) == {"title": "Offences and penalties"}


@patch("app.api.v1.clauses.update_clause", new_callable=AsyncMock)
def test_update_clause_of_other_bill(mock_update: AsyncMock, client: TestClient) -> None:
    mock_update.side_effect = ClauseNotFoundInBillError(10, 2)

    response = client.patch("/api/v1/bills/2/clauses/10", json={"title": "x"})
    assert response.status_code == 404
    assert "does not belong to bill 2" in response.json()["detail"]


# ---------------------------------------------------------------------------
# DELETE /api/v1/bills/{bill_id}/clauses/{clause_id}
# ---------------------------------------------------------------------------


@patch("app.api.v1.clauses.delete_clause", new_callable=AsyncMock)
def test_delete_clause(mock_delete: AsyncMock, client: TestClient) -> None:
    response = client.delete("/api/v1/bills/1/clauses/10")
    assert response.status_code == 204
    assert mock_delete.call_args.kwargs == {"policy": None}


@patch("app.api.v1.clauses.delete_clause", new_callable=AsyncMock)
def test_delete_clause_with_policy(mock_delete: AsyncMock, client: TestClient) -> None:
    response = client.delete(
        "/api/v1/bills/1/clauses/10", params={"orphan_policy": "cascade_delete"}
    )
    assert response.status_code == 204
    assert mock_delete.call_args.kwargs == {"policy": OrphanPolicy.CASCADE_DELETE}


def test_delete_clause_unknown_policy(client: TestClient) -> None:
    response = client.delete(
        "/api/v1/bills/1/clauses/10", params={"orphan_policy": "orphan"}
    )
    assert response.status_code == 422


@patch("app.api.v1.clauses.delete_clause", new_callable=AsyncMock)
def test_delete_clause_blocked(mock_delete: AsyncMock, client: TestClient) -> None:
    mock_delete.side_effect = ClauseDeletionBlockedError(10, 2)

    response = client.delete("/api/v1/bills/1/clauses/10")
    assert response.status_code == 409
    assert "has 2 child clause(s)" in response.json()["detail"]


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
