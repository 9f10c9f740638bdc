"""
OAuth2 JWT-bearer token issuance for service accounts.

A fresh assertion is signed and exchanged on every call; tokens are never
cached, so each request pays one signing operation and one round trip.
"""
import base64
import json
import logging
import time

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from giconnect.constants import (
    ASSERTION_LIFETIME_SECONDS,
    BIGQUERY_SCOPE,
    JWT_BEARER_GRANT_TYPE,
)
from giconnect.errors import ConfigError, TokenExchangeError, truncate_detail
from giconnect.utils.http_utils import response_json, upstream_call
from giconnect.warehouse.credentials import ServiceAccountCredential

logger = logging.getLogger(__name__)

ASSERTION_HEADER = {"alg": "RS256", "typ": "JWT"}


def b64url_encode(data: bytes) -> str:
    """Base64url without padding, as used by compact JWS segments."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _encode_segment(obj: dict) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def build_claims(credential: ServiceAccountCredential, scope: str, issued_at: int) -> dict:
    return {
        "iss": credential.client_email,
        "scope": scope,
        "aud": credential.token_uri,
        "iat": issued_at,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
    }


def sign_rs256(private_key_pem: str, message: bytes) -> bytes:
    """Sign with RSASSA-PKCS1-v1_5 over SHA-256.

    Raises:
        ConfigError: If the PEM text is not a loadable RSA private key
    """
    try:
        key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm):
        # the exception text can quote key material
        raise ConfigError("private_key could not be loaded as a signing key") from None
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ConfigError("private_key is not an RSA key")
    return key.sign(message, padding.PKCS1v15(), hashes.SHA256())


def build_assertion(
    credential: ServiceAccountCredential,
    scope: str = BIGQUERY_SCOPE,
    issued_at: int | None = None,
) -> str:
    """Build the compact ``header.claims.signature`` assertion."""
    if issued_at is None:
        issued_at = int(time.time())
    signing_input = (
        f"{_encode_segment(ASSERTION_HEADER)}."
        f"{_encode_segment(build_claims(credential, scope, issued_at))}"
    )
    signature = sign_rs256(credential.private_key, signing_input.encode("ascii"))
    return f"{signing_input}.{b64url_encode(signature)}"


class TokenIssuer:
    """Exchanges signed service-account assertions for bearer tokens."""

    def __init__(self, http_client: httpx.AsyncClient, scope: str = BIGQUERY_SCOPE):
        self._http_client = http_client
        self._scope = scope

    async def issue(self, credential: ServiceAccountCredential, scope: str | None = None) -> str:
        """Mint a bearer token for ``credential``.

        Raises:
            TokenExchangeError: Token endpoint errored or returned no access token
            DeadlineExceeded: Token endpoint did not answer in time
        """
        assertion = build_assertion(credential, scope or self._scope)

        async with upstream_call("token exchange", error_cls=TokenExchangeError):
            response = await self._http_client.post(
                credential.token_uri,
                data={"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion},
            )

        if not response.is_success:
            logger.error(
                f"Token exchange failed status={response.status_code} "
                f"body={truncate_detail(response.text)}"
            )
            raise TokenExchangeError(
                "token exchange failed",
                downstream_status=response.status_code,
                detail=response.text,
            )

        access_token = response_json(response).get("access_token")
        if not access_token:
            logger.error("Token exchange response has no access_token")
            raise TokenExchangeError("no access_token in token response")

        logger.info(f"Issued bearer token for {credential.client_email}")
        return access_token
