import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from blobsync.cache import ReadCache
from blobsync.middleware import RateLimit
from blobsync.routers import get_routers
from blobsync.shared import Config, Logger, load_config
from blobsync.shared.http import error_envelope_handler
from blobsync.storage import KeyedStore

logger = Logger(__name__, level=logging.DEBUG).get_logger()

config = load_config()


# ================================================================================
#       Lifecycle
# ================================================================================
def welcome(config: Config):
    # Log server banner
    for line in config.general.title.split("\n"):
        logger.info(line)

    # Log server startup information
    logger.info(
        "Starting blob sync server: port %s, api root %r, data directory %s",
        config.network.port,
        config.network.api_root,
        config.paths.data,
    )


async def sweep_cache(cache: ReadCache, interval: float):
    while True:
        await asyncio.sleep(interval)
        removed = cache.clean_expired()
        if removed:
            logger.debug("Swept %s expired cache entries", removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    welcome(app.state.config)
    sweeper = asyncio.create_task(
        sweep_cache(app.state.cache, app.state.config.cache.sweep_interval)
    )
    try:
        yield
    finally:
        logger.info("Shutting down")
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        app.state.store.close()
        logger.info("Server stopped")


# ================================================================================
#       FastAPI Setup
# ================================================================================
def create_app(
    config: Config,
    store: KeyedStore | None = None,
    cache: ReadCache | None = None,
) -> FastAPI:
    app = FastAPI(lifespan=lifespan)

    if store is None:
        store = KeyedStore(
            config.paths.data,
            max_ciphertext_length=config.files.max_encrypted_length,
            max_key_length=config.files.max_uuid_length,
        )
    if cache is None:
        cache = ReadCache(ttl=config.cache.ttl)

    app.state.config = config
    app.state.store = store
    app.state.cache = cache

    for router in get_routers():
        app.include_router(router, prefix=config.network.api_root)

    app.add_exception_handler(StarletteHTTPException, error_envelope_handler)

    app.add_middleware(GZipMiddleware, minimum_size=1024, compresslevel=1)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    app.add_middleware(
        RateLimit,
        timeout_period_s=config.network.rate_limit.timeout_period,
        max_per_second=config.network.rate_limit.requests_per_second,
    )

    return app


app = create_app(config)


# ================================================================================
#       Command Line
# ================================================================================
def main(argv=None):
    import uvicorn

    uvicorn.run(
        "blobsync.main:app",
        host=config.network.host,
        port=config.network.port,
        reload=config.network.reload,
    )


if __name__ == "__main__":
    main()
