from jsonschema import ValidationError, validate

from rendezvous.exceptions import MalformedMessageError
from rendezvous.logging import logger
from rendezvous.schemas.generic_typing import JsonSchemaType
from rendezvous.schemas.request import SignalRequest


def validator(request: SignalRequest, schema: JsonSchemaType) -> None:
    """
    Validates the fields of a signaling request against its kind's JSON schema.

    Args:
        request (SignalRequest): The request to validate.
        schema (JsonSchemaType): The JSON schema registered for the request kind.

    Raises:
        MalformedMessageError: If the fields do not satisfy the schema.
    """
    try:
        validate(request.data, schema)
    except ValidationError as ex:
        logger.debug(f"Invalid data for kind {request.kind}: {ex.message}")
        raise MalformedMessageError(
            f"Invalid data for kind {request.kind}: {ex.message}"
        ) from ex


def addressed_schema(*payload_fields: str) -> JsonSchemaType:
    """
    Schema for peer-to-peer kinds: a non-empty ``to`` plus opaque payload fields.

    Payload fields may hold any JSON value; only their presence is checked.
    """
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": {
            "to": {"type": "string", "minLength": 1},
            **{field: {} for field in payload_fields},
        },
        "required": ["to", *payload_fields],
    }
