"""Shared data models for the photo pipeline."""

from typing import Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


SUPPORTED_EXTENSIONS = (".jpeg", ".png")
METADATA_FIELDS = ("Caption", "Date", "Photographer")


class ObjectLocation(BaseModel):
    """Location of an object in storage."""

    model_config = ConfigDict(frozen=True)

    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"


class UploadEvent(BaseModel):
    """An object was created in the images bucket."""

    model_config = ConfigDict(frozen=True)

    source: ObjectLocation


class MetadataEvent(BaseModel):
    """A request to set one metadata field on a catalog entry."""

    model_config = ConfigDict(frozen=True)

    image_name: str
    field_name: str
    field_value: str


class Unrecognized(BaseModel):
    """A transport record that did not carry a domain event."""

    reason: str
    raw: Any = None


ParsedEvent = Union[UploadEvent, MetadataEvent, Unrecognized]


class CatalogEntry(BaseModel):
    """Catalog record for one accepted image."""

    model_config = ConfigDict(populate_by_name=True)

    image_name: str = Field(alias="imageName")
    Caption: Optional[str] = None
    Date: Optional[str] = None
    Photographer: Optional[str] = None


class Ok(BaseModel):
    """The event was handled; the message can be acknowledged."""

    detail: str = ""


class RetryableFailure(BaseModel):
    """Handling failed; the transport should redeliver the message."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Exception


class TerminalFailure(BaseModel):
    """Handling failed for good; the message is discarded, never retried."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: Exception


Outcome = Union[Ok, RetryableFailure, TerminalFailure]


class BatchReport(BaseModel):
    """Summary of one consumer invocation over a batch."""

    received: int = 0
    succeeded: int = 0
    retried: int = 0
    discarded: int = 0
    errors: List[str] = Field(default_factory=list)
