"""AWS Lambda handler for assignment and schedule cross-referencing."""
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

import requests

from scraper.ics_feed import IcsFeedClient, IcsFetchError
from processor.cross_reference import CrossReferencer
from processor.matcher import EventMatcher
from processor.models import Assignment, KeywordPair


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

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def parse_keyword_map(raw: Any) -> Optional[List[KeywordPair]]:
    """
    Validate a keyword map given as JSON text or a list of pairs.

    Args:
        raw: None, a JSON string, or a list of [assignment_kw, event_kw]

    Returns:
        List of keyword pairs, or None when nothing was configured

    Raises:
        ValueError: If the value is not a list of string pairs
    """
    if raw is None or raw == '':
        return None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Keyword map is not valid JSON: {e}") from e

    if not isinstance(raw, list):
        raise ValueError("Keyword map must be a list of pairs")

    pairs = []
    for item in raw:
        if (not isinstance(item, (list, tuple)) or len(item) != 2
                or not all(isinstance(kw, str) for kw in item)):
            raise ValueError(f"Invalid keyword pair: {item!r}")
        pairs.append((item[0], item[1]))

    return pairs


def _error_response(
    http_status: int,
    message: str,
    error: Exception,
    start_time: float,
    **extra: Any
) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return {'statusCode': http_status, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Cross-reference assignments with a schedule feed.

    Args:
        event: Payload with 'assignments' and optional 'ics_url',
            'days_ahead' and 'keyword_map'
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()

    try:
        timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
        max_retries = int(os.environ.get('MAX_RETRIES', '1'))
        fallback = os.environ.get('MATCH_FALLBACK', 'fuzzy')
        env_keyword_map = parse_keyword_map(os.environ.get('KEYWORD_MAP'))
        default_days_ahead = int(os.environ.get('DAYS_AHEAD', '30'))

        matcher = EventMatcher(fallback=fallback)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}", exc_info=True)
        return _error_response(500, 'Invalid configuration', e, start_time)

    try:
        ics_url = event.get('ics_url') or os.environ.get('ICS_URL')
        if not ics_url:
            raise ValueError("No ICS URL given in payload or ICS_URL")

        days_ahead = int(event.get('days_ahead', default_days_ahead))
        keyword_map = parse_keyword_map(event.get('keyword_map')) or env_keyword_map
        # Course APIs list an assignment once per bucket; keep the first
        assignments = []
        seen_ids = set()
        for item in event.get('assignments', []):
            assignment = Assignment.from_dict(item)
            if assignment.id not in seen_ids:
                seen_ids.add(assignment.id)
                assignments.append(assignment)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Rejected invalid request: {e}")
        return _error_response(400, 'Invalid request', e, start_time)

    logger.info(
        "Lambda execution started",
        extra={
            'assignments': len(assignments),
            'days_ahead': days_ahead,
            'match_fallback': fallback,
            'keyword_pairs': len(keyword_map or [])
        }
    )

    try:
        client = IcsFeedClient(timeout=timeout_seconds, max_retries=max_retries)
        referencer = CrossReferencer(matcher=matcher)

        try:
            logger.info("Fetching events from calendar")
            events = client.fetch_events(ics_url)
        except (IcsFetchError, requests.RequestException) as e:
            logger.error(
                f"Failed to fetch calendar feed: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                502, 'Failed to fetch calendar events', e, start_time,
                status_code=getattr(e, 'status_code', None),
                reason=getattr(e, 'reason', None)
            )

        logger.info("Cross-referencing assignments with calendar events")
        results = referencer.cross_reference(
            assignments, events, days_ahead=days_ahead, keyword_map=keyword_map
        )

        duration = time.time() - start_time
        implied = sum(1 for r in results if r.implied_deadline is not None)

        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'events_parsed': len(events),
                'with_implied_deadline': implied
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Cross-reference completed successfully',
                'results': [r.to_dict() for r in results],
                'statistics': {
                    'events_parsed': len(events),
                    'assignments': len(results),
                    'with_implied_deadline': implied,
                    'duration_seconds': round(duration, 2)
                }
            }, ensure_ascii=False)
        }

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Cross-reference failed', e, start_time)
