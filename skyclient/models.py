"""Wire models for events, properties and table stats."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .timestamps import format_timestamp, parse_timestamp


class DataType(str, Enum):
    """Property data types understood by the server."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    FACTOR = "factor"


class InsertMode(str, Enum):
    """How an inserted event combines with one already at the same timestamp."""
    REPLACE = "replace"
    MERGE = "merge"


INSERT_METHODS: Dict[InsertMode, str] = {
    InsertMode.REPLACE: "PUT",
    InsertMode.MERGE: "PATCH",
}


def insert_method(mode: str | InsertMode) -> str:
    """
    Map an insertion mode to its HTTP method.

    Raises:
        ValidationError: If the mode is not "replace" or "merge"
    """
    try:
        return INSERT_METHODS[InsertMode(mode)]
    except ValueError:
        raise ValidationError(f"Invalid insertion mode: {mode!r}") from None


# Values a property can hold; nested containers are not storable.
Scalar = Union[str, int, float, bool, None]


class Event(BaseModel):
    """A timestamped hash of data attached to an object."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    data: Dict[str, Scalar] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def serialize(self) -> Dict[str, Any]:
        """Encode the event into an untyped dict."""
        return {
            "timestamp": format_timestamp(self.timestamp),
            "data": dict(self.data),
        }

    @classmethod
    def deserialize(cls, obj: Mapping[str, Any] | None) -> "Event":
        """
        Decode an event from an untyped mapping.

        Raises:
            ValidationError: If the timestamp or data fields are malformed
        """
        if not isinstance(obj, Mapping):
            raise ValidationError(f"Unable to deserialize event from {obj!r}")

        raw_timestamp = obj.get("timestamp")
        if not isinstance(raw_timestamp, str):
            raise ValidationError(f"Invalid timestamp: {raw_timestamp!r}")
        timestamp = parse_timestamp(raw_timestamp)

        data = obj.get("data")
        if data is None:
            data = {}
        elif not isinstance(data, Mapping):
            raise ValidationError(f"Invalid data: {data!r}")

        try:
            return cls(timestamp=timestamp, data=dict(data))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid data: {data!r}") from e


class Property(BaseModel):
    """A column in a table's schema."""
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: int = 0
    name: str
    transient: bool = False
    data_type: DataType = Field(default=DataType.STRING, alias="dataType")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class Stats(BaseModel):
    """Table statistics; unknown server fields are kept as extras."""
    model_config = ConfigDict(extra="allow")

    count: int = 0
