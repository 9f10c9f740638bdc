import logging
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from giconnect.middleware import configure_middleware
from giconnect.exception_handlers import (
    giconnect_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from giconnect.errors import GIConnectError
from giconnect.lifespan import lifespan
from giconnect.apis.analytics.router import analytics_router
from giconnect.apis.chat.router import chat_router
from giconnect.apis.images.router import images_router
from giconnect.apis.meta.router import meta_router
from giconnect.apis.sync.router import sync_router
from giconnect.config import ApiConfig, app_cfg

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def create_api(settings: ApiConfig = app_cfg) -> FastAPI:
    api = FastAPI(
        title="GI Connect API",
        description="Warehouse sync, analytics, image generation and chat relay for the GI Connect marketplace",
        version="0.1.0",
        exception_handlers={
            GIConnectError: giconnect_exception_handler,
            RequestValidationError: validation_exception_handler,
            StarletteHTTPException: http_exception_handler,
            Exception: unhandled_exception_handler,
        },
        lifespan=lifespan
    )
    api.state.settings = settings

    api = configure_middleware(api, settings)

    for router in (meta_router, sync_router, analytics_router, images_router, chat_router):
        api.include_router(router, prefix=settings.API_ROUTER_PATH_PREFIX)

    return api


api = create_api()

if __name__ == '__main__':
    uvicorn.run(
        app="giconnect.main:api",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
