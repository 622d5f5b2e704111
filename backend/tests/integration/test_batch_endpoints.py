"""
Batch Endpoint Tests

Tests for POST /api/batches, GET /api/batches/{batchId},
POST /api/batches/{batchId}/cancel and POST /api/batches/parse-rows.
"""

import time

import pytest

from app.services.rate_limiter import batch_rate_limiter


def batch_body(*emails, policy="skip", template_id="classic-blue"):
    return {
        "templateId": template_id,
        "publisherId": "org-42",
        "duplicatePolicy": policy,
        "candidates": [
            {
                "recipientEmail": email,
                "fieldValues": {
                    "name": email.split("@")[0].title(),
                    "date": "2026-10-18",
                    "certificateId": f"CH-{i:04d}",
                },
            }
            for i, email in enumerate(emails)
        ],
    }


def wait_for_batch(client, batch_id: str) -> dict:
    """Poll status until the batch reaches a terminal state."""
    for _ in range(50):
        data = client.get(f"/api/batches/{batch_id}").json()
        if data["state"] in ("completed", "failed"):
            return data
        time.sleep(0.1)
    pytest.fail(f"Batch {batch_id} did not finish")


class TestSubmitBatch:
    """Tests for POST /api/batches."""

    def test_submit_and_complete(self, client):
        response = client.post("/api/batches", json=batch_body("ada@example.com", "grace@example.com"))

        assert response.status_code == 202
        data = response.json()
        assert data["batchId"].startswith("batch_")
        assert data["state"] == "queued"
        assert data["candidateCount"] == 2

        status = wait_for_batch(client, data["batchId"])
        assert status["state"] == "completed"
        assert status["progress"] == 100
        result = status["result"]
        assert result["success"] is True
        assert result["issuedCount"] == 2
        assert result["duplicateCount"] == 0
        assert [item["outcome"] for item in result["items"]] == ["issued", "issued"]
        assert all(len(item["certificateKey"]) == 64 for item in result["items"])

    def test_resubmit_reports_duplicates(self, client):
        first = client.post("/api/batches", json=batch_body("ada@example.com"))
        first_result = wait_for_batch(client, first.json()["batchId"])["result"]

        second = client.post("/api/batches", json=batch_body("ada@example.com"))
        result = wait_for_batch(client, second.json()["batchId"])["result"]

        assert result["issuedCount"] == 0
        assert result["duplicateCount"] == 1
        assert result["duplicates"][0]["existingCertificateKey"] == (
            first_result["items"][0]["certificateKey"]
        )

    def test_update_policy_reissues(self, client):
        first = client.post("/api/batches", json=batch_body("ada@example.com"))
        old_key = wait_for_batch(client, first.json()["batchId"])["result"]["items"][0][
            "certificateKey"
        ]

        second = client.post(
            "/api/batches", json=batch_body("ada@example.com", policy="update")
        )
        item = wait_for_batch(client, second.json()["batchId"])["result"]["items"][0]

        assert item["outcome"] == "updated"
        assert item["previousKey"] == old_key
        assert client.get(f"/api/verify/{old_key}").status_code == 404
        assert client.get(f"/api/verify/{item['certificateKey']}").json()["valid"] is True

    def test_invalid_row_rejects_batch(self, client):
        body = batch_body("ada@example.com", "not-an-email")
        response = client.post("/api/batches", json=body)

        assert response.status_code == 422
        problems = response.json()["details"]["problems"]
        assert {"index": 1, "field": "recipientEmail", "problem": "invalid"} in problems

    def test_missing_required_field_rejects_batch(self, client):
        body = batch_body("ada@example.com")
        del body["candidates"][0]["fieldValues"]["date"]
        response = client.post("/api/batches", json=body)
        assert response.status_code == 422

    def test_empty_batch_rejected(self, client):
        body = batch_body()
        response = client.post("/api/batches", json=body)
        assert response.status_code == 422

    def test_unknown_template(self, client):
        response = client.post(
            "/api/batches", json=batch_body("ada@example.com", template_id="nope")
        )
        assert response.status_code == 404
        assert "classic-blue" in response.json()["details"]["available"]

    def test_rate_limited(self, client, monkeypatch):
        monkeypatch.setattr(batch_rate_limiter, "max_requests", 1)
        assert client.post("/api/batches", json=batch_body("a@example.com")).status_code == 202
        response = client.post("/api/batches", json=batch_body("b@example.com"))
        assert response.status_code == 429


class TestBatchStatus:
    def test_unknown_batch(self, client):
        response = client.get("/api/batches/batch_missing")
        assert response.status_code == 404
        assert response.json()["details"]["batch_id"] == "batch_missing"

    def test_cancel_finished_batch_is_noop(self, client):
        batch_id = client.post("/api/batches", json=batch_body("ada@example.com")).json()[
            "batchId"
        ]
        wait_for_batch(client, batch_id)

        response = client.post(f"/api/batches/{batch_id}/cancel")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "completed"
        assert data["cancelRequested"] is False

    def test_cancel_unknown_batch(self, client):
        assert client.post("/api/batches/batch_missing/cancel").status_code == 404


class TestParseRows:
    def test_parse_rows(self, client):
        response = client.post(
            "/api/batches/parse-rows",
            json={
                "templateId": "classic-blue",
                "text": "Name\tEmail\tDate\tCertificate ID\tNotes\n"
                "Ada Lovelace\tada@example.com\t2026-10-18\tCH-0001\tfirst\n",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["extraColumns"] == ["Notes"]
        assert data["candidates"] == [
            {
                "recipientEmail": "ada@example.com",
                "fieldValues": {
                    "name": "Ada Lovelace",
                    "date": "2026-10-18",
                    "certificateId": "CH-0001",
                },
            }
        ]

    def test_parse_rows_bad_header(self, client):
        response = client.post(
            "/api/batches/parse-rows",
            json={"templateId": "classic-blue", "text": "Name\nAda\n"},
        )
        assert response.status_code == 422
