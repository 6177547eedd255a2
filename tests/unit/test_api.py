"""
Unit Tests for the HTTP adapter
"""
import pytest
from fastapi.testclient import TestClient

from easygp.config import Settings
from easygp.main import create_app

DIAGNOSE_URL = "/api/v1/diagnose"


@pytest.fixture(scope="module")
def client() -> TestClient:
    return TestClient(create_app(Settings(_env_file=None)))


@pytest.fixture
def strep_payload() -> dict:
    return {
        "age": 8,
        "contact_history": False,
        "discrete_symptoms": [
            {"feature": "fever", "present": True},
            {"feature": "SwollenGlands", "present": True},
            {"feature": "exudate", "present": True},
            {"feature": "cough", "present": False},
        ],
    }


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["calibration"] == "1.0.0"


class TestDiagnose:
    """Tests for POST /api/v1/diagnose."""

    def test_strep_presentation(self, client, strep_payload):
        response = client.post(DIAGNOSE_URL, json=strep_payload)
        assert response.status_code == 200

        body = response.json()
        assert body["recommendation"] == "test_for_strep"
        assert body["message"].startswith("Test for strep")
        assert body["top_conditions"][0]["condition"] == "strep_throat"
        assert len(body["top_conditions"]) == 3
        assert sum(body["probabilities"].values()) == pytest.approx(1.0, abs=1e-3)
        assert set(body["log_odds"]) == set(body["probabilities"])
        assert body["diagnosis_id"].startswith("DX-")
        assert body["calibration_version"] == "1.0.0"

    def test_empty_symptom_lists(self, client):
        response = client.post(DIAGNOSE_URL, json={"age": 40})
        assert response.status_code == 200
        assert len(response.json()["probabilities"]) == 8

    def test_duplicate_feature(self, client, strep_payload):
        strep_payload["continuous_symptoms"] = [{"feature": "fever", "value": 39.0}]
        response = client.post(DIAGNOSE_URL, json=strep_payload)
        assert response.status_code == 422

        detail = response.json()["detail"]
        assert detail["error"] == "invalid_observation"
        assert detail["reason"] == "duplicate_feature"
        assert detail["feature"] == "fever"

    def test_out_of_range_age(self, client):
        response = client.post(DIAGNOSE_URL, json={"age": 130})
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "out_of_range"

    def test_huge_integer_age(self, client):
        response = client.post(DIAGNOSE_URL, json={"age": 2**64})
        assert response.status_code == 422
        assert response.json()["detail"]["reason"] == "out_of_range"

    def test_unknown_feature(self, client, strep_payload):
        strep_payload["discrete_symptoms"].append({"feature": "sneezing", "present": True})
        response = client.post(DIAGNOSE_URL, json=strep_payload)
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "unknown_name"

    def test_missing_age(self, client):
        response = client.post(DIAGNOSE_URL, json={"discrete_symptoms": []})
        assert response.status_code == 422
