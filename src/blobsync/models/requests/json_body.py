from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request
from pydantic import BaseModel

from blobsync.shared import Logger

logger = Logger(__name__).get_logger()

type UnwrapHandler[T] = Callable[[Request], Awaitable[T]]

PARSE_ERROR = "Bad Request: failed to parse JSON"


class JsonBody:
    """Parses request bodies into models, answering 400 on malformed JSON."""

    @classmethod
    def unwrap[T: BaseModel](cls, output_type: type[T]) -> UnwrapHandler[T]:
        return cls._create_handler(output_type, allow_empty=False)

    @classmethod
    def unwrap_optional[T: BaseModel](cls, output_type: type[T]) -> UnwrapHandler[T]:
        """Like :meth:`unwrap` but an empty body yields the model's defaults."""
        return cls._create_handler(output_type, allow_empty=True)

    @classmethod
    def _create_handler[T: BaseModel](
        cls,
        output_type: type[T],
        allow_empty: bool,
    ) -> UnwrapHandler[T]:
        logger.debug(
            "Creating unwrap handler for output type: %s (allow empty: %s)",
            output_type.__name__,
            allow_empty,
        )

        async def unwrap_handler(request: Request) -> T:
            return await cls.parse(request, output_type, allow_empty=allow_empty)

        return unwrap_handler

    @staticmethod
    async def parse[T: BaseModel](
        request: Request,
        output_type: type[T],
        allow_empty: bool = False,
    ) -> T:
        body = await request.body()

        if allow_empty and not body.strip():
            logger.debug("Empty body, using %s defaults.", output_type.__name__)
            return output_type()

        try:
            result = output_type.model_validate_json(body)
        except ValueError as e:
            logger.warning(
                "Failed to parse %s body on %s: %s",
                output_type.__name__,
                request.url.path,
                e,
            )
            raise HTTPException(status_code=400, detail=PARSE_ERROR) from e

        logger.debug("Parsed request body into %s.", output_type.__name__)
        return result
