from typing import Iterable, Type, TypeVar

from pydantic import BaseModel

from estate_market.schemas.schema import PROPERTY_OUT_SCHEMAS, PropertyOut

T = TypeVar("T", bound=BaseModel)


class ORMMapper:
    @staticmethod
    def one(item, schema: Type[T]) -> T:
        return schema.model_validate(item)

    @staticmethod
    def many(items: Iterable, schema: Type[T]) -> list[T]:
        return [schema.model_validate(item) for item in items]

    @staticmethod
    def listing(item) -> PropertyOut:
        """Serialize a property with the output schema of its own variant."""
        schema = PROPERTY_OUT_SCHEMAS[item.listing_type]
        return schema.model_validate(item)

    @classmethod
    def listings(cls, items: Iterable) -> list[PropertyOut]:
        return [cls.listing(item) for item in items]
