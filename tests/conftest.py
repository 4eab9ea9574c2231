import pytest

from reflex_data_explorer import ColumnDef


@pytest.fixture
def contact_columns():
    return [
        ColumnDef("name", "Name"),
        ColumnDef("email", "Email", sortable=False),
        ColumnDef("status", "Status"),
        ColumnDef("company", "Company"),
        ColumnDef("score", "Lead Score", type="number"),
    ]


@pytest.fixture
def contacts():
    companies = ["Globex", "Initech", None, "Umbrella", "Hooli", "Globex", "ACME Corp", "Initech", None, "Hooli"]
    statuses = ["NEW", "IN_REVIEW", "RESOLVED", "NEW", "ARCHIVED", "NEW", "NEW", "RESOLVED", "IN_REVIEW", "NEW"]
    return [
        {
            "id": i,
            "name": f"Contact {i}",
            "email": f"contact{i}@example.com",
            "status": statuses[i - 1],
            "company": companies[i - 1],
            "score": (i * 37) % 100,
        }
        for i in range(1, 11)
    ]


@pytest.fixture
def ten_rows():
    return [{"id": i, "value": i * 10} for i in range(10)]


@pytest.fixture
def score_rows():
    return [{"id": 1, "score": 80}, {"id": 2, "score": 80}, {"id": 3, "score": 60}]


@pytest.fixture
def score_columns():
    return [ColumnDef("score", "Score", type="number")]
