"""Basic app tests"""
from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)


def test_health_endpoint():
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_root_endpoint():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["version"] == "1.0.0"


def test_protected_endpoint_without_credentials(client):
    """`client` here is the fixture with the test database"""
    response = client.get("/subscriptions")
    assert response.status_code == 401


def test_protected_endpoint_with_invalid_token(client):
    response = client.get("/subscriptions", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
