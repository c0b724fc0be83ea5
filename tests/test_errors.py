import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.exceptions import InsufficientBalanceError, ResourceNotFoundError, StorageError
from app.main import create_app

from conftest import make_config


class Item(BaseModel):
    name: str
    price: int


@pytest.fixture
def error_client(backend):
    app = create_app(make_config(), transport=httpx.MockTransport(backend.handler))

    @app.post("/test-validation")
    def create_item(item: Item):
        return item

    @app.get("/test-custom-error")
    def trigger_custom_error():
        raise ResourceNotFoundError(message="Item not found")

    @app.get("/test-details")
    def trigger_error_with_details():
        raise InsufficientBalanceError(details={"balance": 100, "required": 4000})

    @app.get("/test-storage")
    def trigger_storage_error():
        raise StorageError("Document store returned HTTP 500", status=500, body="upstream stack trace")

    @app.get("/test-crash")
    def trigger_crash():
        raise RuntimeError("kaboom")

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def test_404_not_found(error_client):
    response = error_client.get("/non-existent-route")
    assert response.status_code == 404
    data = response.json()
    assert "error" in data
    assert "code" in data
    assert data["code"] == "HTTP_ERROR"


def test_validation_error_structure(error_client):
    response = error_client.post("/test-validation", json={"name": "foo", "price": "invalid"})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert "details" in data
    assert len(data["details"]) > 0


def test_custom_exception(error_client):
    response = error_client.get("/test-custom-error")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "Item not found"


def test_custom_exception_details(error_client):
    response = error_client.get("/test-details")
    assert response.status_code == 402
    assert response.json()["details"] == {"balance": 100, "required": 4000}


def test_unhandled_exception(error_client):
    response = error_client.get("/test-crash")
    assert response.status_code == 500
    data = response.json()
    assert data["code"] == "INTERNAL_ERROR"
    assert data["error"] == "kaboom"


def test_storage_error_hides_upstream_body(error_client):
    response = error_client.get("/test-storage")
    assert response.status_code == 502
    assert response.json()["details"] == {"status": 500}
    assert "upstream stack trace" not in response.text
