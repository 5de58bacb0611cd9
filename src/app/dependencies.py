from __future__ import annotations

from functools import lru_cache

from src.app.metrics import MetricsDiagnostics
from src.app.settings import settings
from src.search.gateway import ElasticSearchGateway
from src.search.highlights import HighlightResolver
from src.search.provider import ElasticSearchProvider
from src.search.traits import ElasticSearchTraits


def build_traits() -> ElasticSearchTraits:
    return ElasticSearchTraits(
        remote_url=settings.es_remote_url,
        index_name=settings.es_index_name,
        object_type=settings.es_object_type,
        default_field=settings.es_default_field,
        highlight_field=settings.es_highlight_field,
        text_field=settings.es_text_field,
        metadata_field=settings.es_metadata_field,
        result_size=settings.es_result_size,
        random_order=settings.es_random_order,
        connect_timeout=settings.es_connect_timeout,
        read_timeout=settings.es_read_timeout,
        connect_retries=settings.es_connect_retries,
    )


def build_resolver() -> HighlightResolver:
    return HighlightResolver(
        marker_open=settings.highlight_marker_open,
        marker_close=settings.highlight_marker_close,
        strategy=settings.match_strategy,
        min_anchor_ratio=settings.highlight_min_anchor_ratio,
        html_encoded=settings.highlight_html_encoded,
    )


@lru_cache
def get_provider() -> ElasticSearchProvider:
    traits = build_traits()
    resolver = build_resolver()
    gateway = ElasticSearchGateway(
        traits=traits,
        marker_open=resolver.marker_open,
        marker_close=resolver.marker_close,
    )
    return ElasticSearchProvider(
        traits=traits,
        gateway=gateway,
        resolver=resolver,
        diagnostics=MetricsDiagnostics(),
        fetch_missing_text=settings.es_fetch_missing_text,
    )


def reset_provider_cache() -> None:
    get_provider.cache_clear()
