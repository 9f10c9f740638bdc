from conftest import CHAT_URL

PREFIX = "/api/giconnect/v1"


def test_health(make_client):
    client = make_client()

    response = client.get(f"{PREFIX}/health")

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_status_all_dependencies_ok(make_client, upstream):
    upstream.route("GET", CHAT_URL, status_code=405)
    client = make_client()

    response = client.get(f"{PREFIX}/status")

    assert response.status_code == 200
    assert response.json() == {"services": {
        "bigquery-credential": {"status": "OK"},
        "image-models": {"status": "OK"},
        "object-storage": {"status": "OK"},
        "chat-backend": {"status": "OK"},
    }}


def test_status_bad_credential_is_unavailable(make_client, upstream):
    upstream.route("GET", CHAT_URL, status_code=200)
    client = make_client(BQ_KEY_JSON='{"client_email": "x@y", "private_key": "not-a-pem"}')

    response = client.get(f"{PREFIX}/status")

    assert response.status_code == 503
    assert response.json()["services"]["bigquery-credential"] == {"status": "Down"}


def test_status_optional_chat_backend_down_is_not_fatal(make_client, upstream):
    upstream.route("GET", CHAT_URL, status_code=503)
    client = make_client()

    response = client.get(f"{PREFIX}/status")

    assert response.status_code == 200
    assert response.json()["services"]["chat-backend"] == {"status": "Down"}


def test_status_unconfigured_dependencies_are_disabled(make_client):
    client = make_client(CHATBOT_BACKEND_URL="")
    client.app.state.deps.storage = None
    client.app.state.deps.image_models = None

    response = client.get(f"{PREFIX}/status")

    assert response.status_code == 200
    services = response.json()["services"]
    assert services["image-models"] == {"status": "Disabled"}
    assert services["object-storage"] == {"status": "Disabled"}
    assert services["chat-backend"] == {"status": "Disabled"}


def test_status_image_models_follow_the_built_client(make_client, upstream):
    upstream.route("GET", CHAT_URL)
    client = make_client(VERTEX_PROJECT_ID="gi-connect-vertex")
    client.app.state.deps.image_models = None

    response = client.get(f"{PREFIX}/status")

    assert response.status_code == 200
    assert response.json()["services"]["image-models"] == {"status": "Disabled"}
