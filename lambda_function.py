"""AWS Lambda handler for Legistar Calendar Sync."""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from processor.canonicalizer import Canonicalizer
from processor.diagnostics import DebugLog, DebugLogHandler, debug_log
from processor.models import RunConfig
from sources.registry import build_adapters
from storage.dynamodb_store import DynamoDBCalendarStore
from sync.deduplicator import VenueDeduplicator
from sync.pipeline import SyncPipeline
from sync.purge import purge

ACTIONS = ('sync', 'purge', 'dedupe', 'fetch')

# Adapters live across warm invocations so their edge caches do too
_adapters = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO', debug_ring: Optional[DebugLog] = None) -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug_ring: When given, every record is also copied into this ring
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create new handler with JSON formatter
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    if debug_ring is not None:
        root_logger.addHandler(DebugLogHandler(debug_ring))

    # Set log level
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_adapters(config: RunConfig):
    """Return the process-wide source adapters, building them on first use."""
    global _adapters
    if _adapters is None:
        _adapters = build_adapters(config)
    return _adapters


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Legistar Calendar Sync.

    The EventBridge schedule and manual invocations share this entry point.
    The payload may carry ``action`` (sync, purge, dedupe or fetch; default
    sync), ``source_id`` for fetch, and ``debug`` to collect diagnostics.

    Args:
        event: EventBridge event payload or manual invocation payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and a JSON body
    """
    event = event or {}
    config = RunConfig.from_env()
    config.debug = config.debug or bool(event.get('debug'))
    action = event.get('action', 'sync')

    # Initialize logging
    if config.debug:
        debug_log.enable()
    else:
        debug_log.disable()
    setup_logging(config.log_level, debug_log if config.debug else None)
    logger = logging.getLogger(__name__)

    # Log Lambda execution start
    start_time = time.time()
    logger.info(
        f"Lambda execution started: {action}",
        extra={
            'events_table': config.events_table,
            'venues_table': config.venues_table,
            'max_past_days': config.max_past_days,
            'debug': config.debug
        }
    )

    if action not in ACTIONS:
        logger.error(f"Unknown action: {action}")
        return _response(400, {
            'message': f"Unknown action '{action}'",
            'allowed_actions': list(ACTIONS)
        })

    try:
        now = datetime.now(timezone.utc)
        adapters = get_adapters(config)

        if action == 'fetch':
            source_id = event.get('source_id', '')
            if source_id not in adapters:
                return _response(400, {
                    'message': f"Unknown source '{source_id}'",
                    'sources': list(adapters)
                })
            result = adapters[source_id].fetch(debug=True)
            return _response(200, {
                'source': source_id,
                'url': result.url,
                'raw_response': result.raw_diagnostic,
                'error': result.error
            })

        store = DynamoDBCalendarStore(
            events_table=config.events_table,
            venues_table=config.venues_table,
            region_name=config.region_name
        )

        if action == 'purge':
            deleted = purge(store, now, config.max_past_days)
            body = {'message': f"Purged {deleted} old events", 'deleted': deleted}
        elif action == 'dedupe':
            counts = VenueDeduplicator(store).deduplicate()
            body = {
                'message': (
                    f"Merged {counts['merged']} duplicate venues, "
                    f"updated {counts['reassigned_events']} events"
                ),
                **counts
            }
        else:
            logger.info("Synchronizing sources with calendar store")
            pipeline = SyncPipeline(
                adapters=adapters,
                store=store,
                canonicalizer=Canonicalizer(timezone=config.timezone),
                config=config
            )
            results = pipeline.run(now)
            body = {
                'message': 'Sync completed successfully',
                'last_sync': now.isoformat(),
                'results': {
                    source_id: result.to_dict() for source_id, result in results.items()
                }
            }

        # Calculate execution duration
        duration = time.time() - start_time
        body['duration_seconds'] = round(duration, 2)
        if config.debug:
            body['debug_log'] = debug_log.to_list()

        logger.info(
            f"Lambda execution completed successfully",
            extra={'duration_seconds': round(duration, 2), 'action': action}
        )
        return _response(200, body)

    except Exception as e:
        # Calculate execution duration
        duration = time.time() - start_time

        # Log error
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        # Return error response
        return _response(500, {
            'message': f"{action.capitalize()} failed",
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })
