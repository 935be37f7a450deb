"""Record models decoded from DSpace REST responses and article CSV exports."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_FORMAT = "Unknown"


class RepositoryRecord(BaseModel):
    """Immutable view of a remote object.

    Payloads are decoded defensively: only the keys a model declares are picked
    out of the server's JSON before validation, so extra or oddly shaped nested
    blocks on one record never interfere with decoding.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @classmethod
    def payload_keys(cls) -> set[str]:
        return {field.alias or name for name, field in cls.model_fields.items()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]):
        selected = {key: payload[key] for key in cls.payload_keys() if key in payload}
        return cls.model_validate(selected)


class Community(RepositoryRecord):
    """Top level of the repository hierarchy."""

    name: str
    uuid: str | None = None
    handle: str | None = None
    count_items: int | None = Field(default=None, alias="countItems")


class Collection(RepositoryRecord):
    """A named grouping of items."""

    name: str
    uuid: str
    handle: str | None = None
    number_items: int | None = Field(default=None, alias="numberItems")


class MetadataEntry(RepositoryRecord):
    """One Dublin Core style ``key``/``value`` pair from an expanded item."""

    key: str
    value: str | None = None
    language: str | None = None


class Bitstream(RepositoryRecord):
    """Metadata for a payload attached to an item (content is fetched separately)."""

    uuid: str
    name: str
    format: str = UNKNOWN_FORMAT
    size_bytes: int = Field(default=0, ge=0, alias="sizeBytes")
    retrieve_link: str | None = Field(default=None, alias="retrieveLink")
    mime_type: str | None = Field(default=None, alias="mimeType")
    bundle_name: str | None = Field(default=None, alias="bundleName")
    sequence_id: int | None = Field(default=None, alias="sequenceId")
    item_uuid: str | None = Field(default=None, alias="itemUuid")

    @field_validator("format", mode="before")
    @classmethod
    def _blank_format_is_unknown(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN_FORMAT
        return value

    @property
    def is_csv(self) -> bool:
        if self.format.upper() == "CSV":
            return True
        return (self.mime_type or "").lower() == "text/csv"


class Item(RepositoryRecord):
    """A unit within a collection."""

    uuid: str
    name: str | None = None
    handle: str | None = None
    collection_uuid: str | None = Field(default=None, alias="collectionUuid")
    last_modified: str | None = Field(default=None, alias="lastModified")
    archived: str | bool | None = None
    withdrawn: str | bool | None = None
    bitstreams: list[Bitstream] | None = None
    metadata: list[MetadataEntry] | None = None

    @field_validator("bitstreams", mode="before")
    @classmethod
    def _select_bitstream_fields(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [Bitstream.from_payload(entry) if isinstance(entry, Mapping) else entry for entry in value]
        return value

    @field_validator("metadata", mode="before")
    @classmethod
    def _select_metadata_fields(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [MetadataEntry.from_payload(entry) if isinstance(entry, Mapping) else entry for entry in value]
        return value

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Item":
        item = super().from_payload(payload)
        parent = payload.get("parentCollection")
        if item.collection_uuid is None and isinstance(parent, Mapping) and parent.get("uuid"):
            item = item.model_copy(update={"collection_uuid": parent["uuid"]})
        return item

    def metadata_values(self, key: str) -> list[str]:
        """Return every value recorded under ``key`` (e.g. ``dc.title``)."""
        return [entry.value for entry in self.metadata or [] if entry.key == key and entry.value is not None]


class ArticleRecord(BaseModel):
    """One newspaper article row from a bitstream CSV export.

    Only the columns below are typed; every other column in the export is kept
    as a string attribute because the remote CSV owns the schema.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    sort_year_asc: int | None = None
    newspaper_page: int | None = None
    edition_id: str | None = Field(default=None, alias="editionId")
    fulltext_org: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _empty_cell_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value == "":
            return None
        return value
