"""
Health endpoint tests.

Endpoint: GET /health
"""

import pytest


@pytest.mark.api
@pytest.mark.smoke
def test_health_endpoint_returns_200(api_client):
    """Test that /health returns 200 OK"""
    response = api_client.get("/health")

    assert response.status_code == 200


@pytest.mark.api
@pytest.mark.smoke
def test_health_endpoint_status_is_healthy(api_client):
    """Test that /health reports healthy status"""
    data = api_client.get("/health").json()

    assert data["status"] == "healthy"
    assert "version" in data
