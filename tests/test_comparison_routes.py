import pytest
from pydantic import ValidationError

from clausecompare.main import app
from clausecompare.routes import comparison_routes
from clausecompare.services.clause_extractor import ClauseExtraction
from clausecompare.services.errors import ClauseExtractionError

CLAUSES_URL = "/api/v1/comparison/clauses"
DOCUMENTS_URL = "/api/v1/comparison/documents"


class FakeExtractor:
    """Treats each non-empty line of the upload as an Obligations clause"""

    model_name = "gemini-2.5-flash"

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def extract(self, text, taxonomy, instructions=None, document_name="document", usage_tracker=None):
        self.calls.append((document_name, instructions))
        if self.error:
            raise self.error
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        categories = {key: [] for key in taxonomy.categories}
        categories[taxonomy.categories[0]] = lines
        return ClauseExtraction(taxonomy=taxonomy.name, categories=categories, summary=f"{len(lines)} clauses")


def _upload(name, text):
    return (name, text.encode("utf-8"), "text/plain")


def test_compare_clauses(client, service_agreement, revised_agreement):
    response = client.post(CLAUSES_URL, json={
        "document_a": {"name": "msa_v1.pdf", "categories": service_agreement},
        "document_b": {"name": "msa_v2.pdf", "categories": revised_agreement},
        "threshold": 0.3,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["doc_names"] == ["msa_v1.pdf", "msa_v2.pdf"]
    assert list(body["categories"]) == ["Obligations", "Rights", "Risks_Liabilities", "Term_Termination", "Levers"]
    assert body["categories"]["Risks_Liabilities"]["title"] == "Risks / Liabilities"
    assert len(body["categories"]["Obligations"]["matched"]) == 2
    assert body["summary"]["totals"] == {"matched": 3, "identical": 0, "unique_to_a": 2, "unique_to_b": 1}
    # Rights +1 A, Levers +1 B, unique liability in A counts for B
    assert body["verdict"]["advantage_a"] == 1
    assert body["verdict"]["advantage_b"] == 2
    assert body["verdict"]["favored"] is None
    assert "not legal advice" in body["verdict"]["disclaimer"]


def test_compare_clauses_defaults_missing_categories(client):
    response = client.post(CLAUSES_URL, json={
        "document_a": {"name": "A"},
        "document_b": {"name": "B", "categories": {"Rights": None}},
    })

    assert response.status_code == 200
    body = response.json()
    assert body["threshold"] == 0.7
    assert body["summary"]["totals"]["matched"] == 0


def test_compare_clauses_rejects_bad_shapes(client):
    bad_clause = client.post(CLAUSES_URL, json={
        "document_a": {"name": "A", "categories": {"Obligations": [1, 2]}},
        "document_b": {"name": "B"},
    })
    bad_taxonomy = client.post(CLAUSES_URL, json={
        "document_a": {"name": "A"}, "document_b": {"name": "B"}, "taxonomy": "open_ended",
    })
    bad_threshold = client.post(CLAUSES_URL, json={
        "document_a": {"name": "A"}, "document_b": {"name": "B"}, "threshold": 1.5,
    })

    assert bad_clause.status_code == 422
    assert bad_taxonomy.status_code == 422
    assert bad_threshold.status_code == 422


def test_taxonomy_is_checked_by_a_field_validator():
    decorators = comparison_routes.ClauseComparisonRequest.__pydantic_decorators__
    assert "taxonomy_must_exist" in decorators.field_validators
    assert not decorators.validators

    with pytest.raises(ValidationError, match="Unknown taxonomy"):
        comparison_routes.ClauseComparisonRequest(
            document_a={"name": "A"}, document_b={"name": "B"}, taxonomy="open_ended"
        )


def test_list_taxonomies(client):
    body = client.get("/api/v1/comparison/taxonomies").json()

    assert body["default"] == "universal"
    names = [taxonomy["name"] for taxonomy in body["taxonomies"]]
    assert names == ["universal", "benefit_liability_lever"]


def test_health(client):
    body = client.get("/api/system/health").json()
    assert body["status"] == "healthy"
    assert body["policy"]["identical_threshold"] == 0.99


def test_compare_documents(client, upload_dir):
    extractor = FakeExtractor()
    app.dependency_overrides[comparison_routes.get_clause_extractor] = lambda: extractor

    response = client.post(
        DOCUMENTS_URL,
        files={
            "file_a": _upload("v1.txt", "Provider shall deliver by Dec 31\nClient shall pay $10,000\n"),
            "file_b": _upload("v2.txt", "Provider must deliver before December 31\nClient shall pay $10,000 in total\n"),
        },
        data={"threshold": "0.3", "instructions": "Focus on payment"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["doc_names"] == ["v1.txt", "v2.txt"]
    assert len(body["categories"]["Obligations"]["matched"]) == 2
    assert body["document_summaries"] == {"document_a": "2 clauses", "document_b": "2 clauses"}
    assert set(body["ai_metadata"]["by_source"]) == {"document_a", "document_b"}
    assert sorted(extractor.calls) == [("v1.txt", "Focus on payment"), ("v2.txt", "Focus on payment")]
    assert list(upload_dir.iterdir()) == []


def test_compare_documents_without_clauses(client, upload_dir):
    app.dependency_overrides[comparison_routes.get_clause_extractor] = lambda: FakeExtractor()

    response = client.post(DOCUMENTS_URL, files={
        "file_a": _upload("a.txt", "Only one line"),
        "file_b": _upload("b.txt", "Also one line"),
    })

    assert response.status_code == 422
    assert "Could not find legal clauses" in response.json()["detail"]
    assert list(upload_dir.iterdir()) == []


def test_compare_documents_rejects_file_type(client):
    app.dependency_overrides[comparison_routes.get_clause_extractor] = lambda: FakeExtractor()

    response = client.post(DOCUMENTS_URL, files={
        "file_a": ("a.exe", b"MZ", "application/octet-stream"),
        "file_b": _upload("b.txt", "text"),
    })
    assert response.status_code == 400


def test_compare_documents_reports_extraction_failure(client, upload_dir):
    failing = FakeExtractor(error=ClauseExtractionError("gave up after 5 attempts"))
    app.dependency_overrides[comparison_routes.get_clause_extractor] = lambda: failing

    response = client.post(DOCUMENTS_URL, files={
        "file_a": _upload("a.txt", "Clause one\nClause two"),
        "file_b": _upload("b.txt", "Clause three\nClause four"),
    })

    assert response.status_code == 502
    assert list(upload_dir.iterdir()) == []


def test_compare_documents_without_api_key(client, monkeypatch):
    def unavailable():
        raise ClauseExtractionError("GEMINI_API_KEY environment variable not set")

    monkeypatch.setattr(comparison_routes, "_shared_extractor", unavailable)

    response = client.post(DOCUMENTS_URL, files={
        "file_a": _upload("a.txt", "Clause one"),
        "file_b": _upload("b.txt", "Clause two"),
    })
    assert response.status_code == 503
