import pytest
from fastapi.testclient import TestClient

from clausecompare.main import app
from clausecompare.routes import comparison_routes
from clausecompare.utils.file_handler import FileHandler


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def client(upload_dir):
    app.dependency_overrides[comparison_routes.get_file_handler] = lambda: FileHandler(upload_dir=upload_dir)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def service_agreement():
    return {
        "Obligations": [
            "Provider shall deliver by Dec 31",
            "Client shall pay $10,000",
        ],
        "Rights": ["Client may audit the provider's records once per year"],
        "Risks_Liabilities": ["Client bears all liability for data breaches"],
        "Term_Termination": ["Either party may terminate with 30 days written notice"],
        "Levers": [],
    }


@pytest.fixture
def revised_agreement():
    return {
        "Obligations": [
            "Provider must deliver before December 31",
            "Client shall pay $10,000 in total",
        ],
        "Rights": [],
        "Risks_Liabilities": [],
        "Term_Termination": ["Either party may terminate with 60 days written notice"],
        "Levers": ["Volume discount available above 100 seats"],
    }
