import json
import sys
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from google.genai import errors as genai_errors
from google.genai import types

from giconnect.config import ApiConfig
from giconnect.lifespan import build_dependencies
from giconnect.main import create_api

TOKEN_URL = "https://oauth2.googleapis.com/token"
BQ_BASE = "https://bigquery.googleapis.com/bigquery/v2/projects/test-project"
STORAGE_URL = "https://storage.test"
CHAT_URL = "https://chat.test/api/chat"
WORKER_SECRET = "worker-s3cret"


class UpstreamRecorder:
    """Routes requests made through a MockTransport and keeps every one of them."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self._routes: list[tuple[str, str, Callable[[httpx.Request], httpx.Response]]] = []

    def route(
        self,
        method: str,
        url_prefix: str,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict | None = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if json_body is not None:
                return httpx.Response(status_code, json=json_body, headers=headers)
            return httpx.Response(status_code, content=content or b"", headers=headers)

        self._routes.append((method, url_prefix, handler or respond))

    def fail(self, method: str, url_prefix: str, exc_cls: type[httpx.HTTPError]) -> None:
        def raise_error(request: httpx.Request) -> httpx.Response:
            raise exc_cls("simulated failure", request=request)

        self._routes.append((method, url_prefix, raise_error))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for method, prefix, respond in self._routes:
            if request.method == method and str(request.url).startswith(prefix):
                return respond(request)
        return httpx.Response(404, json={"error": f"no route for {request.method} {request.url}"})

    def calls_to(self, url_prefix: str) -> list[httpx.Request]:
        return [call for call in self.calls if str(call.url).startswith(url_prefix)]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def warehouse_ok(self, insert_response: dict | None = None) -> None:
        self.route("POST", TOKEN_URL, json_body={"access_token": "ya29.test-token", "token_type": "Bearer"})
        self.route("POST", BQ_BASE, json_body=insert_response if insert_response is not None else {})


class FakeSpan:
    def __init__(self, name: str):
        self.name = name
        self.output = None

    def update(self, **kwargs):
        self.output = kwargs.get("output")


class FakeTracer:
    def __init__(self):
        self.spans: list[FakeSpan] = []

    @contextmanager
    def start_as_current_observation(self, as_type: str, name: str, input: Any = None, **kwargs):
        span = FakeSpan(name)
        self.spans.append(span)
        yield span

    def flush(self):
        pass


class FakeImageModels:
    """Stands in for ``client.aio.models`` of a google-genai client."""

    def __init__(self):
        self.vision_text = json.dumps({
            "product_name": "Pashmina Shawl",
            "category": "Textiles",
            "description": "Hand-woven shawl from Kashmir",
            "price": 4999,
            "stock": 3,
            "image_prompt": "pashmina shawl on a studio backdrop",
        })
        self.vision_error: Exception | None = None
        self.failing_inpaint_inputs: set[bytes] | None = set()
        self.inpaint_error: Exception | None = None
        self.calls: list[str] = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append("generate_content")
        if self.vision_error:
            raise self.vision_error
        return SimpleNamespace(text=self.vision_text)

    async def generate_images(self, model, prompt, config=None):
        self.calls.append("generate_images")
        return SimpleNamespace(generated_images=[
            types.GeneratedImage(image=types.Image(image_bytes=f"t2i-{i}".encode()))
            for i in range(config.number_of_images)
        ])

    async def edit_image(self, model, prompt, reference_images, config=None):
        source = reference_images[0].reference_image.image_bytes
        if config.edit_mode == types.EditMode.EDIT_MODE_BGSWAP:
            self.calls.append("inpaint")
            if self.inpaint_error:
                raise self.inpaint_error
            if self.failing_inpaint_inputs is None or source in self.failing_inpaint_inputs:
                raise genai_errors.ClientError(
                    400,
                    {"error": {"code": 400, "message": "image rejected", "status": "INVALID_ARGUMENT"}},
                )
            return SimpleNamespace(generated_images=[
                types.GeneratedImage(image=types.Image(image_bytes=b"inpainted:" + source))
            ])

        self.calls.append("edit_image")
        return SimpleNamespace(generated_images=[
            types.GeneratedImage(image=types.Image(image_bytes=f"i2i-{i}".encode()))
            for i in range(config.number_of_images)
        ])


@pytest.fixture(scope="session")
def private_key_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def credential_info(private_key_pem) -> dict:
    return {
        "type": "service_account",
        "project_id": "test-project",
        "private_key_id": "abc123",
        "private_key": private_key_pem,
        "client_email": "sync@test-project.iam.gserviceaccount.com",
        "token_uri": TOKEN_URL,
    }


@pytest.fixture(scope="session")
def credential_json(credential_info) -> str:
    return json.dumps(credential_info)


@pytest.fixture
def settings(credential_json) -> ApiConfig:
    return ApiConfig(
        _env_file=None,
        BQ_KEY_JSON=credential_json,
        BQ_PROJECT_ID="",
        WORKER_SHARED_SECRET=WORKER_SECRET,
        VERTEX_PROJECT_ID="",
        SUPABASE_URL=STORAGE_URL,
        SUPABASE_SERVICE_ROLE_KEY="service-role-key",
        CHATBOT_BACKEND_URL=CHAT_URL,
        MAX_GENERATED_IMAGES=2,
        CORS_ORIGINS="http://localhost:5173,https://gi-connectivity.lovable.app",
    )


@pytest.fixture
def upstream() -> UpstreamRecorder:
    return UpstreamRecorder()


@pytest.fixture
def image_models() -> FakeImageModels:
    return FakeImageModels()


@pytest.fixture
def tracer() -> FakeTracer:
    return FakeTracer()


@pytest.fixture
def make_client(settings, upstream, image_models, tracer):
    """Build a TestClient whose collaborators all talk to fakes.

    The lifespan is not entered, so the injected dependencies stay in place.
    """
    def _make(**overrides) -> TestClient:
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        app = create_api(app_settings)
        app.state.deps = build_dependencies(
            app_settings,
            http_client=upstream.client(),
            genai_client=SimpleNamespace(aio=SimpleNamespace(models=image_models)),
            tracer=tracer,
        )
        return TestClient(app)

    return _make
