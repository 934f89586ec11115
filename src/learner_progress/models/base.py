"""Shared pydantic base for models exposed over HTTP."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serialises camelCase by alias.

    Plain ``model_dump()`` keeps snake_case, which is what storage writes.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
