"""dsreader: a read-only client for DSpace REST repositories."""

from dsreader.articles import parse_article_csv
from dsreader.client import RepositoryClient
from dsreader.errors import (
    DecodeError,
    NotFoundError,
    RemoteError,
    RepositoryError,
    TransportError,
)
from dsreader.models import ArticleRecord, Bitstream, Collection, Community, Item, MetadataEntry
from dsreader.settings import Settings, get_settings

__all__ = [
    "ArticleRecord",
    "Bitstream",
    "Collection",
    "Community",
    "DecodeError",
    "Item",
    "MetadataEntry",
    "NotFoundError",
    "RemoteError",
    "RepositoryClient",
    "RepositoryError",
    "Settings",
    "TransportError",
    "get_settings",
    "parse_article_csv",
]
