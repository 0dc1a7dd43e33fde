"""Common base for wire models exchanged with the marketplace server."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python.

    Unknown keys are ignored so new server fields never break decoding.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        """Serialize with wire aliases, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
