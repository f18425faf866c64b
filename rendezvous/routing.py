import os
import pkgutil
from importlib import import_module

from fastapi import APIRouter

from rendezvous.exceptions import UnknownEventError
from rendezvous.logging import logger
from rendezvous.schemas.generic_typing import (
    HandlerCallableType,
    JsonSchemaType,
    ValidatorType,
)
from rendezvous.schemas.request import SignalRequest


class EventRouter:
    """
    Router for inbound signaling messages.

    Maps each message kind to its handler and, optionally, a JSON schema
    the message fields must satisfy before the handler runs.
    """

    def __init__(self):
        """
        Initializes the `EventRouter` with empty registries.

        The `handlers_registry` dictionary maps kinds to handler coroutines.
        The `validators_registry` dictionary maps kinds to a tuple of the JSON
        schema and the validator callback applied before the handler.
        """
        self.handlers_registry: dict[str, HandlerCallableType] = {}
        self.validators_registry: dict[
            str, tuple[JsonSchemaType | None, ValidatorType | None]
        ] = {}

    def register(
        self,
        *kinds: str,
        json_schema: JsonSchemaType | None = None,
        validator_callback: ValidatorType | None = None,
    ):
        """
        Decorator registering a handler and validator for one or more kinds.

        Args:
            *kinds (str): Message kinds handled by the decorated coroutine.
            json_schema (JsonSchemaType | None): Optional schema for the message fields.
            validator_callback (ValidatorType | None): Callback applying the schema.

        Returns:
            A decorator function that can be used to register a handler function.
        """

        def decorator(func: HandlerCallableType):
            for kind in kinds:
                # Idempotent for reload
                if kind in self.handlers_registry:
                    if self.handlers_registry[kind] != func:
                        raise ValueError(
                            f"Different handler already registered for kind {kind}"
                        )
                    continue

                self.handlers_registry[kind] = func
                self.validators_registry[kind] = (json_schema, validator_callback)

                logger.info(
                    f"Register {func.__module__}.{func.__name__} for kind: {kind}"
                )

            return func

        return decorator

    def has_handler(self, kind: str) -> bool:
        return kind in self.handlers_registry

    def _validate_request(self, request: SignalRequest) -> None:
        json_schema, validator_func = self.validators_registry[request.kind]

        if validator_func is None or json_schema is None:
            return

        validator_func(request, json_schema)

    async def handle_request(self, request: SignalRequest) -> None:
        """
        Validate a request and run the handler registered for its kind.

        Args:
            request: The inbound signaling request.

        Raises:
            UnknownEventError: If no handler is registered for the kind.
            MalformedMessageError: If the fields fail the kind's schema.
        """
        if not self.has_handler(request.kind):
            raise UnknownEventError(request.kind)

        self._validate_request(request)

        handler = self.handlers_registry[request.kind]
        await handler(request)


event_router = EventRouter()


# Track registered modules to prevent duplicate logging
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def collect_subrouters() -> APIRouter:
    """
    Collects all HTTP and WebSocket routers of the application.

    Iterates the `api/http` and `api/ws/consumers` packages, imports every
    module and includes its `router` into one main `APIRouter`.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/http"]):
        api = import_module(f".{module}", package=f"{app_name}.api.http")
        main_router.include_router(api.router)

        if module not in _registered_http_modules:
            logger.info(f'Register "{module}" api')
            _registered_http_modules.add(module)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/ws/consumers"]):
        ws_consumer = import_module(
            f".{module}", package=f"{app_name}.api.ws.consumers"
        )
        main_router.include_router(ws_consumer.router)

        if module not in _registered_ws_modules:
            logger.info(f'Register "{module}" websocket consumer')
            _registered_ws_modules.add(module)

    return main_router
