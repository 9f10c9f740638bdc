"""
Service-account credential parsing.

The credential arrives as an environment string that has been through any
number of copy/paste and secret-manager round trips: it may be base64 of the
JSON document, wrapped in quotes, or carry its private key with escaped
newlines. ``normalize_credential_blob`` repairs all of these into a single
canonical JSON text.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from giconnect.constants import DEFAULT_TOKEN_URI
from giconnect.errors import ConfigError, NormalizationError

logger = logging.getLogger(__name__)

_PEM_PATTERN = re.compile(r"-----BEGIN ([A-Z0-9 ]+)-----.+?-----END \1-----", re.DOTALL)
_QUOTES = ('"', "'")


class ServiceAccountCredential(BaseModel):
    """Identity used to sign token assertions. Never log an instance."""

    project_id: str | None = Field(default=None)
    client_email: str = Field(min_length=1)
    private_key: str = Field(repr=False)
    token_uri: str = Field(default=DEFAULT_TOKEN_URI)

    @field_validator("token_uri", mode="before")
    @classmethod
    def default_token_uri(cls, value: str | None) -> str:
        return value or DEFAULT_TOKEN_URI

    @field_validator("private_key")
    @classmethod
    def require_pem_markers(cls, value: str) -> str:
        if not has_pem_markers(value):
            raise ValueError("private_key is missing PEM header/footer")
        return value


def safe_prefix(text: str, length: int = 20) -> str:
    """Return a short printable prefix suitable for debug logs."""
    if not text:
        return ""
    return "".join(ch if " " <= ch <= "~" else "?" for ch in text[:length])


def has_pem_markers(key: str) -> bool:
    """True when the text is exactly one PEM block, surrounding whitespace aside."""
    return bool(key) and _PEM_PATTERN.fullmatch(key.strip()) is not None


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        return text[1:-1]
    return text


def _decode_base64_json(text: str) -> str | None:
    try:
        # encoders wrap long output across lines
        decoded = base64.b64decode("".join(text.split()), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    return decoded if decoded.lstrip().startswith("{") else None


def _parse_json_document(text: str) -> dict[str, Any]:
    # strict=False tolerates raw newlines inside the private_key string
    for candidate in (text, text.replace('\\"', '"')):
        try:
            parsed = json.loads(candidate, strict=False)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, str):
            # JSON document that was itself JSON-encoded as a string
            try:
                parsed = json.loads(parsed, strict=False)
            except json.JSONDecodeError:
                continue
        if isinstance(parsed, dict):
            return parsed
    raise NormalizationError("service account credential is not valid JSON")


def normalize_private_key(raw_key: Any) -> str:
    """Turn an escaped or quoted PEM key back into real PEM text.

    Raises:
        NormalizationError: If the PEM header/footer can't be recovered
    """
    if raw_key is None:
        raise NormalizationError("private_key is missing")
    key = raw_key if isinstance(raw_key, str) else json.dumps(raw_key)
    key = _strip_quotes(key.strip())

    key = key.replace("\\\\n", "\\n")
    key = key.replace("\\n", "\n")
    key = key.replace("\\r", "\r")
    key = key.replace("\r\n", "\n").replace("\r", "\n")

    if not has_pem_markers(key):
        key = _strip_quotes(key.replace('\\"', '"').strip())
    if not has_pem_markers(key):
        logger.error(f"private_key normalization failed: length={len(key)} prefix={safe_prefix(key)!r}")
        raise NormalizationError("private_key normalization failed: PEM header/footer missing")

    return key.strip() + "\n"


def normalize_credential_blob(raw: str | None) -> str:
    """Repair a raw credential string into canonical JSON.

    Accepts base64 of the JSON document, a quoted document, and private keys
    carrying literal ``\\n`` sequences. Every accepted variant of the same
    credential yields byte-identical output.

    Raises:
        NormalizationError: If the document can't be parsed or its key repaired
    """
    if raw is None or not raw.strip():
        raise NormalizationError("service account credential is empty")

    text = raw.strip()
    decoded = _decode_base64_json(text)
    if decoded is not None:
        logger.debug("Credential blob was base64 encoded")
        text = decoded.strip()
    else:
        text = _strip_quotes(text)

    document = _parse_json_document(text)
    document["private_key"] = normalize_private_key(document.get("private_key"))

    key = document["private_key"]
    logger.debug(f"Normalized private_key length={len(key)} prefix={safe_prefix(key)!r}")
    return json.dumps(document, sort_keys=True)


def load_credential(raw: str | None) -> ServiceAccountCredential:
    """Normalize and validate the credential blob from configuration.

    Raises:
        ConfigError: If the secret is missing or lacks required fields
    """
    if not raw:
        raise ConfigError("server misconfigured: BQ_KEY_JSON missing")

    document = json.loads(normalize_credential_blob(raw))
    if not document.get("client_email"):
        raise ConfigError("service account missing client_email")
    try:
        return ServiceAccountCredential.model_validate(document)
    except PydanticValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigError(f"service account credential invalid: {fields or 'unknown field'}") from None
