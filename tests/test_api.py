"""
API tests through FastAPI's TestClient.

The database dependency is pointed at the per-test SQLite database and the
classifier slot at a fresh slot.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from moderation_agent.classifier import LoadedClassifier
from moderation_agent.database import get_db
from moderation_agent.dependencies import get_classifier_slot
from moderation_agent.main import app


@pytest.fixture
def client(session_maker, slot):
    def override_get_db():
        db = session_maker()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_classifier_slot] = lambda: slot
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client, text="hello world", username="new_user", **extra):
    response = client.post("/content", json={"text": text, "author_username": username, **extra})
    assert response.status_code == 201
    return response.json()


# =============================================================================
# Content
# =============================================================================

def test_submitted_content_is_queued(client):
    body = _submit(client, text="first post")

    assert body["status"] == "queued"
    assert body["author_username"] == "new_user"
    assert body["latest_prediction"] is None
    assert client.get(f"/content/{body['id']}").json()["text"] == "first post"


def test_authors_are_reused_by_username(client):
    first = _submit(client, username="alice")
    second = _submit(client, username="alice")

    assert first["author_id"] == second["author_id"]


def test_blank_username_is_rejected(client):
    response = client.post("/content", json={"text": "hi", "author_username": "   "})
    assert response.status_code == 422


def test_invalid_image_is_rejected(client):
    response = client.post("/content", json={
        "text": "look", "author_username": "bob", "image": {"content": "%%%not-base64%%%"}
    })
    assert response.status_code == 400


def test_valid_image_is_stored(client):
    encoded = base64.b64encode(b"\x89PNG fake bytes").decode()
    body = _submit(client, text="pic", image={"content": encoded, "mime_type": "image/png"})

    assert body["status"] == "queued"
    assert body["image_label"] is None


def test_unknown_content_is_404(client):
    response = client.get("/content/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "ContentNotFoundError"


def test_send_to_review_and_list_pending(client):
    body = _submit(client)

    moved = client.post(f"/content/{body['id']}/send-to-review")
    pending = client.get("/content/pending-review")

    assert moved.json()["status"] == "pending_review"
    assert [item["id"] for item in pending.json()] == [body["id"]]


def test_reset_stuck_with_nothing_stuck(client):
    _submit(client)

    response = client.post("/content/reset-stuck", params={"timeout_minutes": 5})

    assert response.status_code == 200
    assert response.json() == {"reset_count": 0}


# =============================================================================
# Reviews
# =============================================================================

def test_review_sets_status_and_counts_once(client):
    body = _submit(client)

    first = client.post(f"/reviews/{body['id']}", json={"gold_label": "block", "feedback": "spam"})
    client.post(f"/reviews/{body['id']}", json={"gold_label": "block"})

    assert first.status_code == 200
    assert first.json()["gold_label"] == "block"
    assert client.get(f"/content/{body['id']}").json()["status"] == "blocked"
    assert client.get("/settings").json()["new_gold_since_last_train"] == 1


def test_latest_review_lookup(client):
    body = _submit(client)
    assert client.get(f"/reviews/{body['id']}").status_code == 404

    client.post(f"/reviews/{body['id']}", json={"gold_label": "allow"})

    assert client.get(f"/reviews/{body['id']}").json()["gold_label"] == "allow"


def test_review_with_invalid_label_is_rejected(client):
    body = _submit(client)
    response = client.post(f"/reviews/{body['id']}", json={"gold_label": "maybe"})
    assert response.status_code == 422


def test_review_of_unknown_content_is_404(client):
    assert client.post("/reviews/missing", json={"gold_label": "allow"}).status_code == 404


# =============================================================================
# Settings
# =============================================================================

def test_default_settings(client):
    body = client.get("/settings").json()

    assert body["allow_threshold"] == 0.3
    assert body["review_threshold"] == 0.5
    assert body["block_threshold"] == 0.7
    assert body["retrain_threshold"] == 10
    assert body["retraining_enabled"] is True


def test_update_thresholds(client):
    response = client.put("/settings/thresholds", json={
        "allow_threshold": 0.2, "review_threshold": 0.45, "block_threshold": 0.8
    })

    assert response.status_code == 200
    assert client.get("/settings").json()["block_threshold"] == 0.8


def test_unordered_thresholds_are_400(client):
    response = client.put("/settings/thresholds", json={
        "allow_threshold": 0.6, "review_threshold": 0.5, "block_threshold": 0.8
    })

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidThresholdsError"


def test_retraining_switches(client):
    assert client.post("/settings/retrain-threshold", json={"retrain_threshold": 3}).json()["retrain_threshold"] == 3
    assert client.post("/settings/retraining", json={"enabled": False}).json()["retraining_enabled"] is False
    assert client.post("/settings/retrain-threshold", json={"retrain_threshold": 0}).status_code == 422


# =============================================================================
# Wordlist
# =============================================================================

def test_wordlist_crud(client):
    created = client.post("/wordlist", json={"word": "  Zorblat ", "category": "Slur"})
    assert created.status_code == 201
    word = created.json()
    assert (word["word"], word["category"], word["is_active"]) == ("zorblat", "slur", True)

    duplicate = client.post("/wordlist", json={"word": "zorblat", "category": "slur"})
    assert duplicate.json()["id"] == word["id"]

    assert client.get("/wordlist/category/slur").json() == ["zorblat"]

    updated = client.put(f"/wordlist/{word['id']}", json={"is_active": False})
    assert updated.json()["is_active"] is False
    assert client.get("/wordlist/category/slur").json() == []
    assert len(client.get("/wordlist", params={"category": "slur"}).json()) == 1

    assert client.delete(f"/wordlist/{word['id']}").status_code == 204
    assert client.get("/wordlist", params={"category": "slur"}).json() == []


def test_unknown_word_is_404(client):
    assert client.delete("/wordlist/missing").status_code == 404


# =============================================================================
# Model
# =============================================================================

def test_model_status_without_versions(client):
    body = client.get("/model/status").json()

    assert body == {"loaded": False, "loaded_version": None, "active_version": None, "versions": []}


def test_retrain_without_labels_is_409(client):
    response = client.post("/model/retrain")

    assert response.status_code == 409
    assert response.json()["error"] == "InsufficientTrainingDataError"


def test_reload_without_active_version_is_404(client):
    assert client.post("/model/reload-active").status_code == 404


def test_retrain_from_reviews(client, slot):
    for i in range(6):
        spam = _submit(client, text=f"buy cheap pills now offer {i}")
        ham = _submit(client, text=f"lovely walk in the park {i}")
        client.post(f"/reviews/{spam['id']}", json={"gold_label": "block"})
        client.post(f"/reviews/{ham['id']}", json={"gold_label": "allow"})

    response = client.post("/model/retrain")

    assert response.status_code == 200
    assert response.json()["version"] == 1
    assert response.json()["training_sample_count"] == 12
    assert slot.loaded_version == 1
    assert client.get("/model/status").json()["active_version"] == 1
    assert client.get("/settings").json()["new_gold_since_last_train"] == 0


def test_save_active_with_other_live_version_is_409(client, slot):
    for i in range(6):
        spam = _submit(client, text=f"buy cheap pills now offer {i}")
        ham = _submit(client, text=f"lovely walk in the park {i}")
        client.post(f"/reviews/{spam['id']}", json={"gold_label": "block"})
        client.post(f"/reviews/{ham['id']}", json={"gold_label": "allow"})
    client.post("/model/retrain")
    slot.swap(LoadedClassifier(model=slot.get().model, version=7))

    response = client.post("/model/save-active")

    assert response.status_code == 409
    assert response.json()["error"] == "ActiveModelMismatchError"


# =============================================================================
# Health and WebSocket
# =============================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers
    assert response.json()["redis_connected"] is False
    assert "queued_items" in response.json()


def test_websocket_ping_pong(client):
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json()["event"] == "connected"
        ws.send_text('{"event": "ping"}')
        assert ws.receive_json()["event"] == "pong"
