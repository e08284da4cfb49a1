"""Test the /webhook endpoints."""
import pytest
from fastapi.testclient import TestClient

from clinic_booking.api.dependencies import get_controller
from clinic_booking.api_server import app
from clinic_booking.config import Settings, get_settings
from clinic_booking.state import BookingStep

SENDER = "919876543210"


def webhook_body(*messages, object_type="whatsapp_business_account"):
    return {
        "object": object_type,
        "entry": [{
            "id": "102290129340398",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"phone_number_id": "1234567890"},
                    "messages": list(messages),
                },
            }],
        }],
    }


def text_message(body, sender=SENDER, message_id="wamid.1"):
    return {"from": sender, "id": message_id, "timestamp": "1760000000",
            "type": "text", "text": {"body": body}}


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        whatsapp_token="test-token",
        whatsapp_phone_number_id="1234567890",
        whatsapp_verify_token="verify-me",
        whatsapp_api_version="v18.0",
        log_level="INFO",
    )


@pytest.fixture
def client(controller, settings):
    """Create FastAPI test client wired to the in-memory controller."""
    app.dependency_overrides[get_controller] = lambda: controller
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestVerification:

    def test_handshake_echoes_challenge(self, client):
        response = client.get("/webhook", params={
            "hub.mode": "subscribe",
            "hub.verify_token": "verify-me",
            "hub.challenge": "1158201444",
        })

        assert response.status_code == 200
        assert response.text == "1158201444"

    @pytest.mark.parametrize("params", [
        {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "1"},
        {"hub.mode": "unsubscribe", "hub.verify_token": "verify-me", "hub.challenge": "1"},
        {},
    ])
    def test_handshake_rejected(self, client, params):
        response = client.get("/webhook", params=params)

        assert response.status_code == 403
        assert response.json()["code"] == "VERIFICATION_FAILED"

    def test_rejected_when_no_token_configured(self, client, settings):
        app.dependency_overrides[get_settings] = lambda: Settings(
            **{**settings.__dict__, "whatsapp_verify_token": None}
        )

        response = client.get("/webhook", params={"hub.mode": "subscribe", "hub.challenge": "1"})

        assert response.status_code == 403


class TestInbound:

    def test_text_messages_routed_in_order(self, client, sessions, transport):
        response = client.post("/webhook", json=webhook_body(
            text_message("book", message_id="wamid.1"),
            text_message("yes", message_id="wamid.2"),
        ))

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "processed": 2}
        assert sessions.get(SENDER).step == BookingStep.AWAITING_DEPARTMENT
        assert len(transport.texts(SENDER)) == 2

    def test_non_text_messages_ignored(self, client, sessions, transport):
        image = {"from": SENDER, "id": "wamid.3", "timestamp": "1760000000",
                 "type": "image", "image": {"id": "media-1"}}

        response = client.post("/webhook", json=webhook_body(image))

        assert response.status_code == 200
        assert response.json()["processed"] == 0
        assert transport.sent == []
        assert not sessions.exists(SENDER)

    def test_status_updates_without_messages(self, client, transport):
        body = webhook_body()
        del body["entry"][0]["changes"][0]["value"]["messages"]
        body["entry"][0]["changes"][0]["value"]["statuses"] = [{"id": "wamid.1", "status": "read"}]

        response = client.post("/webhook", json=body)

        assert response.status_code == 200
        assert transport.sent == []

    def test_non_whatsapp_object_rejected(self, client, transport):
        response = client.post("/webhook", json=webhook_body(text_message("book"), object_type="page"))

        assert response.status_code == 400
        assert response.json()["code"] == "UNSUPPORTED_OBJECT"
        assert transport.sent == []

    def test_malformed_payload_returns_validation_error(self, client):
        response = client.post("/webhook", json={"entry": []})

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_response_carries_request_id(self, client):
        response = client.post("/webhook", json=webhook_body())
        assert response.headers["x-request-id"].startswith("req-")


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root(client):
    assert client.get("/").json()["webhook"] == "/webhook"
