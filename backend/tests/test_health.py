def test_health_endpoints(client):
    assert client.get("/api/v1/health").json() == {"status": "ok"}

    live = client.get("/api/v1/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/v1/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"]["schema_ok"] is True
    assert payload["database"]["missing_indexes"] == []


def test_oversized_request_is_rejected(client):
    response = client.post(
        "/api/v1/auth/login",
        content=b"x" * 2_000_000,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 413
    assert response.json()["details"] == {}
