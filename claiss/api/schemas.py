"""Shared base for request/response models exposed with camelCase keys."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python attributes stay snake_case; JSON uses camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
