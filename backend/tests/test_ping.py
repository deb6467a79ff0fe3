from app.config import settings


def test_ping_endpoint_reports_connectivity(client):
    """
    Validate the public health endpoint payload.

    1. Call the public ping endpoint without authentication.
    2. Parse the response payload returned by the backend.
    3. Validate the message names the running application.
    4. Validate DB and Redis connectivity flags are true.
    """
    response = client.get("/api/v1/ping")
    assert response.status_code == 200

    payload = response.json()
    assert payload["message"] == f"{settings.app_name} is running"
    assert payload["db_connected"] is True
    assert payload["redis_connected"] is True


def test_root_endpoint_returns_running_message(client):
    """
    Validate the root endpoint answers without authentication.

    1. Call the root path once.
    2. Parse the response payload.
    3. Validate the success status code.
    4. Validate the message contains the application name.
    """
    response = client.get("/")
    assert response.status_code == 200
    assert settings.app_name in response.json()["message"]
