"""
Payload Codec

Serialises cached DTOs with orjson inside a tagged envelope:

    {"schema": "MenuItemDTO[]", "schema_version": 1, "data": [...]}

Decoding checks the tag, the schema version and the DTO shape, so a
payload written by another release or for another collection is rejected
as a CacheDeserializationError instead of being served.

Author: Platform Team
Date: 2025-12-13
"""

from typing import Any, Generic, TypeVar

import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from src.core.exceptions import CacheDeserializationError

T = TypeVar("T", bound=BaseModel)

SCHEMA_VERSION = 1


class PayloadCodec(Generic[T]):
    """
    Codec for one DTO type, either a single model or a list of models.

    Usage:
        codec = PayloadCodec(MenuItemDTO, many=True)
        raw = codec.encode(items)
        items = codec.decode(raw)
    """

    def __init__(self, model: type[T], many: bool = False, schema_version: int = SCHEMA_VERSION):
        self.model = model
        self.many = many
        self.schema_version = schema_version
        self.schema = f"{model.__name__}[]" if many else model.__name__
        self._adapter = TypeAdapter(tuple[model, ...] if many else model)

    def encode(self, value: T | list[T] | tuple[T, ...]) -> str:
        if self.many:
            data = [item.model_dump(mode="json", by_alias=True) for item in value]
        else:
            data = value.model_dump(mode="json", by_alias=True)
        envelope = {"schema": self.schema, "schema_version": self.schema_version, "data": data}
        return orjson.dumps(envelope).decode()

    def decode(self, raw: str | bytes) -> Any:
        """
        Decode a cached payload.

        Returns:
            The DTO, or a tuple of DTOs for list codecs

        Raises:
            CacheDeserializationError: On malformed JSON, a foreign tag,
                another schema version or a shape mismatch
        """
        try:
            envelope = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheDeserializationError.from_exception(
                e, message="Cached payload is not valid JSON", schema=self.schema
            ) from e

        if not isinstance(envelope, dict) or "data" not in envelope:
            raise CacheDeserializationError(
                "Cached payload has no envelope", details={"schema": self.schema}
            )
        if envelope.get("schema") != self.schema:
            raise CacheDeserializationError(
                "Cached payload belongs to another schema",
                details={"expected": self.schema, "found": envelope.get("schema")},
            )
        if envelope.get("schema_version") != self.schema_version:
            raise CacheDeserializationError(
                "Cached payload has an unsupported schema version",
                details={
                    "schema": self.schema,
                    "expected": self.schema_version,
                    "found": envelope.get("schema_version"),
                },
            )

        try:
            return self._adapter.validate_python(envelope["data"])
        except ValidationError as e:
            raise CacheDeserializationError.from_exception(
                e, message="Cached payload does not match its schema", schema=self.schema
            ) from e
