from __future__ import annotations

"""Connection traits of an Elasticsearch-backed document repository."""

from dataclasses import dataclass

from src.search.errors import InvalidArgumentError


@dataclass(frozen=True)
class ElasticSearchTraits:
    """Where the index lives and how it is queried."""
    remote_url: str = "http://localhost:9200"
    index_name: str = "common-crawl-en"
    object_type: str = "texts"
    default_field: str = "doc.text"
    highlight_field: str = "doc.text"
    text_field: str = "doc.text"
    metadata_field: str = "metadata"
    result_size: int = 1000
    random_order: bool = False
    connect_timeout: float = 5.0
    read_timeout: float = 30.0
    connect_retries: int = 0

    def __post_init__(self) -> None:
        if not self.remote_url.strip():
            raise InvalidArgumentError("remote_url must be set")
        if not self.index_name.strip():
            raise InvalidArgumentError("index_name must be set")
        if self.result_size <= 0:
            raise InvalidArgumentError("result_size must be positive")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise InvalidArgumentError("timeouts must be positive")
        if self.connect_retries < 0:
            raise InvalidArgumentError("connect_retries must not be negative")

    @property
    def base_url(self) -> str:
        return self.remote_url.rstrip("/")
