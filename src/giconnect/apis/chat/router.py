from fastapi import APIRouter, Depends, Request, Response
from typing import Annotated

from giconnect.apis.chat.service import ChatRelay
from giconnect.lifespan import ServiceDependencies, get_dependencies

chat_router = APIRouter(prefix="/chat", tags=["Chat"])


@chat_router.post(
    "",
    summary="Relay a chat message to the conversational backend",
    description=(
        "Expected body: `message`, `user_id`, `role`, `conversation_id`. "
        "The body is forwarded unchanged and the backend's reply is returned as-is."
    ),
    response_class=Response,
)
async def relay_chat(
    request: Request,
    deps: Annotated[ServiceDependencies, Depends(get_dependencies)],
) -> Response:
    relay = ChatRelay(deps.http_client, deps.settings.CHATBOT_BACKEND_URL)
    relayed = await relay.forward(await request.body())
    return Response(
        content=relayed.body,
        status_code=relayed.status_code,
        media_type=relayed.content_type,
    )
