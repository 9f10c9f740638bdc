from dataclasses import dataclass

from giconnect.config import ApiConfig
from giconnect.errors import ConfigError
from giconnect.warehouse.credentials import load_credential
from giconnect.warehouse.token_issuer import TokenIssuer


@dataclass(frozen=True)
class WarehouseAccess:
    """Request-scoped bearer token and the project it is used against."""

    token: str
    project_id: str


async def acquire_warehouse_access(settings: ApiConfig, token_issuer: TokenIssuer) -> WarehouseAccess:
    """Normalize the configured credential and mint a token for it.

    The credential is parsed from settings on every call; nothing derived
    from it outlives the request.
    """
    credential = load_credential(settings.BQ_KEY_JSON)
    project_id = settings.BQ_PROJECT_ID or credential.project_id
    if not project_id:
        raise ConfigError("server misconfigured: no BigQuery project id")

    token = await token_issuer.issue(credential)
    return WarehouseAccess(token=token, project_id=project_id)
