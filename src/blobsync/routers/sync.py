from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from blobsync.cache import ReadCache
from blobsync.core import decrypt
from blobsync.models import StoredBlob
from blobsync.models.requests import (
    DecryptRequest,
    JsonBody,
    UpdateRequest,
    UpdateResponse,
)
from blobsync.shared import Config, Logger, log_request_error
from blobsync.shared.http import store_error_handler
from blobsync.storage import CancelScope, KeyedStore

logger = Logger(__name__).get_logger()

router = APIRouter()


# ================================================================================
#       Dependencies
# ================================================================================
def get_config(request: Request) -> Config:
    return request.app.state.config


def get_store(request: Request) -> KeyedStore:
    return request.app.state.store


def get_cache(request: Request) -> ReadCache:
    return request.app.state.cache


ConfigDep = Annotated[Config, Depends(get_config)]
StoreDep = Annotated[KeyedStore, Depends(get_store)]
CacheDep = Annotated[ReadCache, Depends(get_cache)]


def check_uuid_length(request: Request, uuid: str, config: Config):
    # len() counts code points, matching "characters" rather than bytes
    if len(uuid) > config.files.max_uuid_length:
        log_request_error(
            logger, request, "uuid length exceeds limit", "too long", length=len(uuid)
        )
        raise HTTPException(
            status_code=400,
            detail="Bad Request: uuid length exceeds maximum limit",
        )


# ================================================================================
#       Routes
# ================================================================================
@router.api_route("/", methods=["GET", "POST"], response_class=PlainTextResponse)
async def root(config: ConfigDep):
    return f"Hello World! API ROOT = {config.network.api_root}"


@router.post("/update", response_model=UpdateResponse)
async def update(
    request: Request,
    data: Annotated[UpdateRequest, Depends(JsonBody.unwrap(UpdateRequest))],
    config: ConfigDep,
    store: StoreDep,
    cache: CacheDep,
):
    """
    Store an encrypted blob under the caller chosen uuid.

    JSON payload:
    - uuid: identifier the blob is stored (and later fetched) under
    - encrypted: Base64 "Salted__" container, stored as received
    """
    if not data.encrypted or not data.uuid:
        log_request_error(logger, request, "missing parameters", "empty field")
        raise HTTPException(
            status_code=400,
            detail="Bad Request: both 'encrypted' and 'uuid' fields are required",
        )

    check_uuid_length(request, data.uuid, config)

    if len(data.encrypted) > config.files.max_encrypted_length:
        log_request_error(
            logger,
            request,
            "encrypted data exceeds limit",
            "too long",
            uuid=data.uuid,
            length=len(data.encrypted),
        )
        raise HTTPException(
            status_code=400,
            detail="Bad Request: encrypted data length exceeds maximum limit",
        )

    scope = CancelScope.with_timeout(config.network.request_timeout)
    with store_error_handler(500, "Internal Server Error: failed to save data"):
        await run_in_threadpool(store.put, data.uuid, data.encrypted, scope)

    cache.put(data.uuid, data.encrypted)
    logger.info("Stored %s characters for uuid %s", len(data.encrypted), data.uuid)

    return UpdateResponse()


@router.api_route("/get/{uuid}", methods=["GET", "POST"])
async def get_blob(
    uuid: str,
    request: Request,
    config: ConfigDep,
    store: StoreDep,
    cache: CacheDep,
):
    """
    Return the stored blob for ``uuid``.

    A POST carrying a non-empty ``password`` gets the decrypted plaintext
    instead; a wrong password or damaged blob yields ``{}``.
    """
    check_uuid_length(request, uuid, config)

    encrypted, found = cache.get(uuid)
    if not found:
        scope = CancelScope.with_timeout(config.network.request_timeout)
        with store_error_handler(404, "Not Found: data not found"):
            record = await run_in_threadpool(store.get, uuid, scope)

        encrypted = record.ciphertext
        # An /update may have cached a newer value since the read
        if cache.add(uuid, encrypted):
            logger.debug("Cache refilled for uuid %s", uuid)

    if request.method == "POST":
        data = await JsonBody.parse(request, DecryptRequest, allow_empty=True)
        if data.password:
            decrypted = await run_in_threadpool(decrypt, uuid, encrypted, data.password)
            return Response(content=decrypted, media_type="application/json")

    return StoredBlob(encrypted=encrypted)
