from enum import Enum


BIGQUERY_SCOPE = "https://www.googleapis.com/auth/bigquery"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600

# Downstream bodies quoted in errors and logs are cut to this many characters
MAX_ERROR_DETAIL_CHARS = 500

MAX_IMAGES_CAP = 4
WORKER_SECRET_HEADER = "x-worker-secret"

INPAINT_PROMPT = "Replace background with a clean studio white background. Keep product unchanged."
VISION_PROMPT_TEMPLATE = (
    "You are an assistant that extracts product metadata from an image.\n"
    "Return JSON only with: product_name, category, description, price, stock, image_prompt.\n"
    'Use product name: "{product_name}".'
)

CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    WORKER_SECRET_HEADER,
]
CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]


class SyncVariant(str, Enum):
    EVENT = "event"
    ORDER = "order"
    PRODUCT = "product"


class PipelineStage(str, Enum):
    AUTH_CHECK = "auth_check"
    VISION_EXTRACT = "vision_extract"
    TEXT2IMG = "text2img"
    IMG2IMG = "img2img"
    INPAINT = "inpaint"
    UPLOAD = "upload"
    RESPOND = "respond"
