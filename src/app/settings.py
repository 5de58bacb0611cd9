from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    es_remote_url: str = os.getenv("ES_REMOTE_URL", "http://localhost:9200")
    es_index_name: str = os.getenv("ES_INDEX_NAME", "common-crawl-en")
    es_object_type: str = os.getenv("ES_OBJECT_TYPE", "texts")
    es_default_field: str = os.getenv("ES_DEFAULT_FIELD", "doc.text")
    es_highlight_field_raw: str = os.getenv("ES_HIGHLIGHT_FIELD", "")
    es_text_field: str = os.getenv("ES_TEXT_FIELD", "doc.text")
    es_metadata_field: str = os.getenv("ES_METADATA_FIELD", "metadata")
    es_result_size: int = int(os.getenv("ES_RESULT_SIZE", "1000"))
    es_random_order: bool = _env_bool("ES_RANDOM_ORDER", "false")
    es_connect_timeout: float = float(os.getenv("ES_CONNECT_TIMEOUT", "5"))
    es_read_timeout: float = float(os.getenv("ES_READ_TIMEOUT", "30"))
    es_connect_retries: int = int(os.getenv("ES_CONNECT_RETRIES", "0"))
    es_fetch_missing_text: bool = _env_bool("ES_FETCH_MISSING_TEXT", "false")
    highlight_marker_open: str = os.getenv("HIGHLIGHT_MARKER_OPEN", "<em>")
    highlight_marker_close: str = os.getenv("HIGHLIGHT_MARKER_CLOSE", "</em>")
    highlight_match_strategy: str = os.getenv("HIGHLIGHT_MATCH_STRATEGY", "trim")
    highlight_min_anchor_ratio: float = float(os.getenv("HIGHLIGHT_MIN_ANCHOR_RATIO", "0.5"))
    highlight_html_encoded: bool = _env_bool("HIGHLIGHT_HTML_ENCODED", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    metrics_enabled: bool = _env_bool("SEARCH_METRICS_ENABLED", "true")

    @property
    def es_highlight_field(self) -> str:
        raw = os.getenv("ES_HIGHLIGHT_FIELD", self.es_highlight_field_raw).strip()
        return raw or self.es_default_field

    @property
    def match_strategy(self) -> str:
        return os.getenv("HIGHLIGHT_MATCH_STRATEGY", self.highlight_match_strategy).strip().lower()


settings = Settings()
