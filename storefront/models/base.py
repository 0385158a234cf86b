"""Base schema for payloads returned by the marketplace API."""

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from storefront.errors import SchemaError


class ApiModel(BaseModel):
    """Immutable snapshot of a server-owned record.

    The marketplace API speaks camelCase; attributes are snake_case and
    ``to_dict`` emits snake_case for the storefront UI.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra='ignore',
    )

    def to_dict(self):
        return self.model_dump(mode='json')


def parse(model, payload):
    """Validate an API payload into ``model`` or raise SchemaError."""
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SchemaError(model.__name__, e.errors(include_url=False)) from e


def parse_list(model, payload):
    if not isinstance(payload, list):
        raise SchemaError(model.__name__, [{'msg': 'expected a list', 'input': type(payload).__name__}])
    return [parse(model, entry) for entry in payload]
