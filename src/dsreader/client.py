"""Synchronous client for the DSpace REST community/collection/item/bitstream tree."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from dsreader.articles import parse_article_csv
from dsreader.errors import DecodeError, NotFoundError, RemoteError, TransportError
from dsreader.models import ArticleRecord, Bitstream, Collection, Community, Item, RepositoryRecord
from dsreader.settings import Settings

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=RepositoryRecord)


class RepositoryClient:
    """Read-only access to one repository.

    Every call is a single blocking GET (or one GET per page for list
    endpoints). Errors are raised to the caller untouched; there is no retry.
    """

    def __init__(self, settings: Settings | None = None, *, client: httpx.Client | None = None) -> None:
        self._settings = settings or Settings()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=self._settings.timeout_seconds,
            follow_redirects=True,
            headers={"Accept": "application/json"},
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RepositoryClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # hierarchy

    def list_communities(self) -> list[Community]:
        return self._list("communities", Community)

    def list_collections(self) -> list[Collection]:
        return self._list("collections", Collection)

    def get_collection(self, collection_id: str) -> Collection:
        url = self._url("collections", collection_id)
        return self._decode_one(self._get_json(url, identifier=collection_id), Collection, url=url)

    def list_items(self, collection_id: str) -> list[Item]:
        items = self._list(f"collections/{quote(collection_id, safe='')}/items", Item, identifier=collection_id)
        return [
            item if item.collection_uuid else item.model_copy(update={"collection_uuid": collection_id})
            for item in items
        ]

    def get_item(self, item_id: str, *, expand: Sequence[str] = ()) -> Item:
        url = self._url("items", item_id)
        params = {"expand": ",".join(expand)} if expand else None
        payload = self._get_json(url, params=params, identifier=item_id)
        return self._decode_one(payload, Item, url=url)

    def list_bitstreams(self, item_id: str) -> list[Bitstream]:
        bitstreams = self._list(f"items/{quote(item_id, safe='')}/bitstreams", Bitstream, identifier=item_id)
        return [bitstream.model_copy(update={"item_uuid": item_id}) for bitstream in bitstreams]

    def list_bitstreams_for_items(self, item_ids: Iterable[str]) -> dict[str, list[Bitstream]]:
        """Fetch bitstream listings one item at a time.

        Wide requests across many items break on heterogeneous payloads, so
        this never batches; the first failing item's error propagates.
        """
        listings: dict[str, list[Bitstream]] = {}
        for item_id in item_ids:
            if item_id in listings:
                continue
            listings[item_id] = self.list_bitstreams(item_id)
        return listings

    def get_bitstream(self, bitstream_id: str) -> Bitstream:
        url = self._url("bitstreams", bitstream_id)
        return self._decode_one(self._get_json(url, identifier=bitstream_id), Bitstream, url=url)

    # content

    def retrieve_url(self, bitstream: Bitstream) -> str:
        """Resolve a bitstream's ``retrieveLink`` against the base URL."""
        link = bitstream.retrieve_link
        if not link:
            return f"{self._url('bitstreams', bitstream.uuid)}/retrieve"
        if link.startswith(("http://", "https://")):
            return link
        return f"{self._settings.base_url}/{link.lstrip('/')}"

    def retrieve_bitstream(self, bitstream: Bitstream) -> bytes:
        return self._get(self.retrieve_url(bitstream), identifier=bitstream.uuid).content

    def retrieve_text(self, bitstream: Bitstream) -> str:
        return self._get(self.retrieve_url(bitstream), identifier=bitstream.uuid).text

    def download_bitstream(self, bitstream: Bitstream, target: Path) -> Path:
        url = self.retrieve_url(bitstream)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(f"{target.name}.part")
        logger.info("repository.download", url=url, target=str(target))
        try:
            with self._client.stream("GET", url) as stream:
                self._check_status(stream, url, bitstream.uuid)
                with partial.open("wb") as fh:
                    for chunk in stream.iter_bytes():
                        fh.write(chunk)
        except httpx.TransportError as exc:
            partial.unlink(missing_ok=True)
            raise TransportError(f"Request failed: {exc}", url=url, identifier=bitstream.uuid) from exc
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        partial.replace(target)
        logger.info("repository.downloaded", target=str(target))
        return target

    def fetch_articles(self, bitstream: Bitstream, *, on_error: str = "raise") -> list[ArticleRecord]:
        """Retrieve a CSV bitstream and decode its article rows."""
        url = self.retrieve_url(bitstream)
        if not bitstream.is_csv:
            raise DecodeError(
                f"Bitstream {bitstream.name!r} has format {bitstream.format!r}, not CSV",
                url=url,
                identifier=bitstream.uuid,
            )
        response = self._get(url, identifier=bitstream.uuid)
        return parse_article_csv(response.content, on_error=on_error, source=url)

    # plumbing

    def _url(self, resource: str, identifier: str | None = None) -> str:
        url = f"{self._settings.rest_url}/{resource}"
        if identifier is not None:
            url = f"{url}/{quote(identifier, safe='')}"
        return url

    def _list(self, path: str, model: type[RecordT], *, identifier: str | None = None) -> list[RecordT]:
        url = self._url(path)
        page_size = self._settings.page_size
        if page_size <= 0:
            return self._decode_many(self._get_json(url, identifier=identifier), model, url=url)

        records: list[RecordT] = []
        seen: set[str] = set()
        offset = 0
        while True:
            params = {"limit": page_size, "offset": offset}
            page = self._decode_many(self._get_json(url, params=params, identifier=identifier), model, url=url)
            keys = {_record_key(record) for record in page}
            if page and keys <= seen:
                # the server ignored offset and served a page we already have
                logger.warning("repository.paging_ignored", url=url, offset=offset)
                break
            seen |= keys
            records.extend(page)
            logger.debug("repository.page", url=url, offset=offset, count=len(page))
            if len(page) < page_size:
                break
            offset += page_size
        return records

    def _get(self, url: str, *, params: Mapping[str, Any] | None = None, identifier: str | None = None) -> httpx.Response:
        logger.debug("repository.request", url=url, params=dict(params or {}))
        try:
            response = self._client.get(url, params=params)
        except httpx.TransportError as exc:
            logger.warning("repository.transport_error", url=url, error=str(exc))
            raise TransportError(f"Request failed: {exc}", url=url, identifier=identifier) from exc
        self._check_status(response, url, identifier)
        return response

    def _check_status(self, response: httpx.Response, url: str, identifier: str | None) -> None:
        if response.status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError("Resource not found", url=url, identifier=identifier)
        if response.is_error:
            raise RemoteError(
                f"Unexpected HTTP status {response.status_code}",
                status_code=response.status_code,
                url=url,
                identifier=identifier,
            )

    def _get_json(self, url: str, *, params: Mapping[str, Any] | None = None, identifier: str | None = None) -> Any:
        response = self._get(url, params=params, identifier=identifier)
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"Response is not valid JSON: {exc}", url=url, identifier=identifier) from exc

    def _decode_one(self, payload: Any, model: type[RecordT], *, url: str) -> RecordT:
        if not isinstance(payload, Mapping):
            raise DecodeError(f"Expected a JSON object, got {type(payload).__name__}", url=url)
        try:
            return model.from_payload(payload)
        except ValidationError as exc:
            raise DecodeError(
                f"Cannot decode {model.__name__}: {_first_error(exc)}",
                url=url,
                identifier=_payload_key(payload),
            ) from exc

    def _decode_many(self, payload: Any, model: type[RecordT], *, url: str) -> list[RecordT]:
        if not isinstance(payload, list):
            raise DecodeError(f"Expected a JSON array, got {type(payload).__name__}", url=url)
        return [self._decode_one(entry, model, url=url) for entry in payload]


def _record_key(record: RepositoryRecord) -> str:
    return getattr(record, "uuid", None) or getattr(record, "name", None) or repr(record)


def _payload_key(payload: Mapping[str, Any]) -> str | None:
    value = payload.get("uuid")
    return value if isinstance(value, str) else None


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]
