"""
HTTP handlers — aiohttp routes for the one-time secret store.

Routes:
- ``POST /store`` — store a secret, returns its id and expiry
- ``GET /secret/{id}`` — retrieve (and by default destroy) a secret
- ``GET /status`` — store statistics
- ``GET /health`` — liveness probe

Error responses are generic: cryptographic failures, tampering and
unexpected errors all surface as a plain 500 without details.
"""
import time
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from aiohttp import web

from .vault.config import VaultConfig
from .vault.crypto import EnvelopeCipher
from .vault.exceptions import (
    KeyUnavailable,
    SecretExpired,
    SecretNotFound,
    VaultError,
)
from .vault.gateway import MemorySecretGateway, SecretRecordGateway, is_valid_secret_id
from .vault.keys import KeyMaterialProvider
from .vault.service import SecretService

logger = logging.getLogger("envelope_vault.web")

VAULT_SERVICE = web.AppKey("vault_service", SecretService)
STARTED_AT = web.AppKey("vault_started_at", float)

routes = web.RouteTableDef()


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


def json_response(data: Any, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=_dumps)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _uptime(request: web.Request) -> int:
    return int(time.monotonic() - request.app[STARTED_AT])


def validate_store_payload(
    body: Any, config: VaultConfig
) -> tuple[Optional[str], Optional[str], list[dict[str, str]]]:
    """Validate a ``POST /store`` body.

    Returns:
        Tuple of (trimmed data, trimmed title or None, list of errors).
    """
    errors: list[dict[str, str]] = []
    if not isinstance(body, dict):
        return None, None, [{"field": "body", "message": "Body must be a JSON object"}]

    data = body.get("data")
    if not isinstance(data, str):
        errors.append({"field": "data", "message": "Data must be a string"})
        data = None
    else:
        data = data.strip()
        if not 1 <= len(data) <= config.max_data_length:
            errors.append({
                "field": "data",
                "message": (
                    f"Data must be between 1 and {config.max_data_length:,} characters"
                ),
            })

    title = body.get("title")
    if title is not None:
        if not isinstance(title, str):
            errors.append({"field": "title", "message": "Title must be a string"})
            title = None
        else:
            title = title.strip() or None
            if title and len(title) > config.max_title_length:
                errors.append({
                    "field": "title",
                    "message": (
                        f"Title must be less than {config.max_title_length} characters"
                    ),
                })
    return data, title, errors


@routes.post("/store")
async def store_secret(request: web.Request) -> web.Response:
    service = request.app[VAULT_SERVICE]
    logger.debug("Store request from %s", request.remote)
    try:
        body = await request.json(loads=orjson.loads)
    except ValueError:
        return json_response(
            {"error": "Bad Request", "message": "Body must be valid JSON"},
            status=400,
        )

    data, title, errors = validate_store_payload(body, service.config)
    if errors:
        return json_response(
            {"error": "Validation failed", "details": errors}, status=400,
        )

    try:
        result = await service.store(data, title)
    except KeyUnavailable:
        return json_response(
            {
                "error": "Service Unavailable",
                "message": "Secret storage is not available",
            },
            status=503,
        )
    except VaultError as err:
        logger.error("Error in POST /store: %s", type(err).__name__)
        return json_response({"error": "Internal Server Error"}, status=500)

    return json_response({
        "id": result["id"],
        "message": result["message"],
        "expiresAt": result["expires_at"],
    })


@routes.get("/store")
async def store_method_not_allowed(request: web.Request) -> web.Response:
    return json_response(
        {
            "error": "Method Not Allowed",
            "message": "Use POST to store secrets",
            "allowedMethods": ["POST"],
        },
        status=405,
    )


@routes.get("/secret")
@routes.get("/secret/")
async def secret_id_required(request: web.Request) -> web.Response:
    return json_response(
        {
            "error": "Bad Request",
            "message": "Secret ID is required. Use /secret/:id format.",
        },
        status=400,
    )


@routes.get("/secret/{id}")
async def retrieve_secret(request: web.Request) -> web.Response:
    service = request.app[VAULT_SERVICE]
    secret_id = request.match_info["id"]
    if not is_valid_secret_id(secret_id):
        return json_response(
            {
                "error": "Invalid ID format",
                "message": "The provided ID is not a valid secret identifier",
            },
            status=400,
        )

    try:
        result = await service.retrieve(secret_id)
    except SecretNotFound:
        return json_response(
            {"error": "Not Found", "message": "Secret not found or already retrieved"},
            status=404,
        )
    except SecretExpired:
        return json_response(
            {"error": "Gone", "message": "Secret has expired and been deleted"},
            status=410,
        )
    except KeyUnavailable:
        return json_response(
            {
                "error": "Service Unavailable",
                "message": "Secret storage is not available",
            },
            status=503,
        )
    except VaultError as err:
        logger.error(
            "Error in GET /secret/%s: %s", secret_id, type(err).__name__,
        )
        return json_response({"error": "Internal Server Error"}, status=500)

    return json_response({
        "data": result["data"],
        "title": result["title"],
        "retrievedAt": result["retrieved_at"],
        "wasCreatedAt": result["was_created_at"],
    })


@routes.get("/status")
async def status(request: web.Request) -> web.Response:
    service = request.app[VAULT_SERVICE]
    try:
        stats = await service.stats()
    except Exception as err:
        logger.error("Error getting secret stats: %s", type(err).__name__)
        return json_response(
            {
                "status": "degraded",
                "timestamp": _now(),
                "uptime": _uptime(request),
                "error": "Database error",
            },
            status=500,
        )
    return json_response({
        "status": "operational",
        "timestamp": _now(),
        "uptime": _uptime(request),
        "database": {
            "connected": stats["connected"],
            "totalSecrets": stats["total_secrets"],
            "oldestSecretAge": stats["oldest_secret_age"],
            "keysAvailable": stats["keys_available"],
        },
    })


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    return json_response({
        "status": "healthy",
        "timestamp": _now(),
        "uptime": _uptime(request),
    })


def setup_vault(app: web.Application, service: SecretService) -> web.Application:
    """Register the secret store routes on an existing application."""
    app[VAULT_SERVICE] = service
    app[STARTED_AT] = time.monotonic()
    app.router.add_routes(routes)
    return app


def create_app(
    config: Optional[VaultConfig] = None,
    gateway: Optional[SecretRecordGateway] = None,
) -> web.Application:
    """Build an application wired from configuration.

    Args:
        config: Vault settings, read from the environment when omitted.
        gateway: Secret storage, an in-memory gateway when omitted.
    """
    config = config or VaultConfig.from_env()
    keys = KeyMaterialProvider.from_config(config.keys)
    cipher = EnvelopeCipher(keys, config.keys.oaep_hash)
    service = SecretService(cipher, gateway or MemorySecretGateway(), config)
    return setup_vault(web.Application(), service)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    web.run_app(create_app())


if __name__ == "__main__":
    main()
