"""
Tests for the health endpoint and the shared error envelope.
"""


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "finsage-api"}


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-abc"})

    assert response.headers["X-Request-ID"] == "req-abc"


def test_request_id_generated_when_missing(client):
    response = client.get("/health")

    assert response.headers["X-Request-ID"]


def test_metrics_exposed(client):
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "finsage_http_request_duration_seconds" in response.text


def test_missing_token_is_401_envelope(client):
    response = client.get("/api/v1/conversations", headers={"X-Request-ID": "req-401"})

    assert response.status_code == 401
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Not authenticated"
    assert body["code"] == "UnauthorizedException"
    assert body["request_id"] == "req-401"


def test_garbage_token_is_401(client):
    response = client.get("/api/v1/conversations", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_validation_error_envelope(client, auth_headers_client):
    response = client.post(
        "/api/v1/conversations/unknown/messages",
        json={"content": "Hi", "unexpected": True},
        headers=auth_headers_client,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_error"
    assert body["details"]


def test_unknown_route_is_404_envelope(client):
    response = client.get("/api/v1/nope")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_malformed_json_body_is_bad_request(client, auth_headers_client):
    response = client.post(
        "/api/v1/conversations/unknown/messages",
        content="{not json",
        headers={**auth_headers_client, "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"
