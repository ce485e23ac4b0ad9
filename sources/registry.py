"""Configured upstream sources."""
from typing import Dict, Optional

from processor.models import RunConfig
from sources.base import SourceDefinition
from sources.cache import CachedSourceAdapter
from sources.legistar_api import LegistarApiAdapter
from sources.legistar_html import LegistarTableAdapter

LEGISTAR_API = 'legistar_api'
LEGISTAR_HTML = 'legistar_html'

SOURCES: Dict[str, SourceDefinition] = {
    'madison': SourceDefinition(
        source_id='madison',
        kind=LEGISTAR_API,
        url='https://webapi.legistar.com/v1/madison/events',
        category_tag='City of Madison',
        client='madison',
        rich_records=True,
        cache_ttl=15 * 60
    ),
    'dane': SourceDefinition(
        source_id='dane',
        kind=LEGISTAR_HTML,
        url='https://dane.legistar.com/Calendar.aspx',
        category_tag='Dane County',
        client='dane',
        id_prefix='dane',
        cache_ttl=24 * 60 * 60
    ),
}

ADAPTER_TYPES = {
    LEGISTAR_API: LegistarApiAdapter,
    LEGISTAR_HTML: LegistarTableAdapter,
}


def build_adapter(definition: SourceDefinition, config: RunConfig) -> CachedSourceAdapter:
    """Instantiate the cached adapter for one source definition."""
    adapter_type = ADAPTER_TYPES[definition.kind]
    kwargs = {'timeout': config.timeout_seconds}
    if adapter_type is LegistarApiAdapter:
        kwargs['max_past_days'] = config.max_past_days
    return CachedSourceAdapter(adapter_type(definition, **kwargs))


def build_adapters(config: RunConfig,
                   sources: Optional[Dict[str, SourceDefinition]] = None) -> Dict[str, CachedSourceAdapter]:
    """
    Build cached adapters for every configured source, in registry order.

    Args:
        config: Run configuration
        sources: Source definitions (default: SOURCES)

    Returns:
        Mapping of source_id to adapter
    """
    return {
        source_id: build_adapter(definition, config)
        for source_id, definition in (sources or SOURCES).items()
    }
