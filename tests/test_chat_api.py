import httpx

from conftest import CHAT_URL

PREFIX = "/api/giconnect/v1"
CHAT_BODY = b'{"message": "Is this shawl GI certified?", "user_id": "u1", "role": "customer", "conversation_id": "c1"}'


def test_chat_body_is_forwarded_verbatim(make_client, upstream):
    upstream.route("POST", CHAT_URL, status_code=201, json_body={"reply": "Yes, it carries a GI tag."})
    client = make_client()

    response = client.post(f"{PREFIX}/chat", content=CHAT_BODY, headers={"Content-Type": "application/json"})

    assert response.status_code == 201
    assert response.json() == {"reply": "Yes, it carries a GI tag."}
    forwarded = upstream.calls_to(CHAT_URL)
    assert len(forwarded) == 1
    assert forwarded[0].content == CHAT_BODY
    assert forwarded[0].headers["content-type"] == "application/json"


def test_chat_backend_errors_are_relayed(make_client, upstream):
    upstream.route("POST", CHAT_URL, status_code=502, content=b"upstream model error", headers={"content-type": "text/plain"})
    client = make_client()

    response = client.post(f"{PREFIX}/chat", content=b'{"message": "hi"}')

    assert response.status_code == 502
    assert response.text == "upstream model error"


def test_chat_backend_unreachable(make_client, upstream):
    upstream.fail("POST", CHAT_URL, httpx.ConnectError)
    client = make_client()

    response = client.post(f"{PREFIX}/chat", content=CHAT_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": "chat backend unreachable"}


def test_chat_backend_timeout(make_client, upstream):
    upstream.fail("POST", CHAT_URL, httpx.ReadTimeout)
    client = make_client()

    response = client.post(f"{PREFIX}/chat", content=CHAT_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": "chat backend timed out"}


def test_chat_backend_not_configured(make_client, upstream):
    client = make_client(CHATBOT_BACKEND_URL="")

    response = client.post(f"{PREFIX}/chat", content=CHAT_BODY)

    assert response.status_code == 500
    assert response.json() == {"error": "server misconfigured: CHATBOT_BACKEND_URL missing"}
    assert upstream.calls == []


def test_cors_preflight_is_answered(make_client, upstream):
    client = make_client()

    response = client.options(
        f"{PREFIX}/chat",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type, x-worker-secret",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-max-age"] == "86400"
    assert "x-worker-secret" in response.headers["access-control-allow-headers"].lower()
    assert upstream.calls == []


def test_cors_preflight_rejects_unknown_origin(make_client):
    client = make_client()

    response = client.options(
        f"{PREFIX}/chat",
        headers={"Origin": "https://evil.test", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 400
