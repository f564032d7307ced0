"""Cross-referencing of course assignments with calendar events."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from processor.matcher import EventMatcher
from processor.models import (
    Assignment,
    CrossRefResult,
    Event,
    KeywordPair,
    MatchedEvent,
)

logger = logging.getLogger(__name__)


class CrossReferencer:
    """Combines assignments with matched events and infers deadlines."""

    MAX_SUMMARY_LENGTH = 120
    MAX_REASON_LENGTH = 80
    IMPLIED_REASON_PREFIX = 'Last matching event: '

    def __init__(self, matcher: Optional[EventMatcher] = None):
        """
        Initialize the cross-referencer.

        Args:
            matcher: Matcher to use (default: fuzzy EventMatcher)
        """
        self.matcher = matcher or EventMatcher()

    def cross_reference(
        self,
        assignments: Sequence[Assignment],
        events: Sequence[Event],
        days_ahead: int = 30,
        keyword_map: Optional[Sequence[KeywordPair]] = None,
        now: Optional[datetime] = None
    ) -> List[CrossRefResult]:
        """
        Match every assignment against upcoming events.

        Args:
            assignments: Assignments to cross-reference
            events: Parsed calendar events
            days_ahead: Only events starting within this many days are used
            keyword_map: Explicit keyword pairs passed to the matcher
            now: Reference time (default: current UTC time)

        Returns:
            Results with undated assignments first, each group by date
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now + timedelta(days=days_ahead)
        candidates = [ev for ev in events if ev.start and ev.start <= cutoff]

        results = [
            self._build_result(
                assignment,
                self.matcher.match(assignment.name, candidates, keyword_map)
            )
            for assignment in assignments
        ]
        results.sort(key=lambda r: (r.has_due_date, r.effective_date))

        logger.info(
            f"Cross-referenced {len(results)} assignments against "
            f"{len(candidates)} events"
        )
        return results

    def _build_result(
        self,
        assignment: Assignment,
        matched: List[Event]
    ) -> CrossRefResult:
        has_due_date = bool(assignment.due_at)

        result = CrossRefResult(
            assignment=assignment.name,
            assignment_id=assignment.id,
            canvas_due_date=assignment.due_at,
            has_due_date=has_due_date,
            points_possible=assignment.points_possible,
            html_url=assignment.html_url,
            matched_events=[self._render_event(ev) for ev in matched]
        )

        if not has_due_date and matched:
            last_event = matched[-1]
            if last_event.start:
                result.implied_deadline = format_date(last_event.start)
                result.implied_reason = (
                    self.IMPLIED_REASON_PREFIX
                    + describe(last_event)[:self.MAX_REASON_LENGTH]
                )

        return result

    def _render_event(self, event: Event) -> MatchedEvent:
        return MatchedEvent(
            date=format_date(event.start) if event.start else None,
            time=format_time(event.start) if event.start else None,
            end_time=format_time(event.end) if event.end else None,
            summary=describe(event)[:self.MAX_SUMMARY_LENGTH],
            location=event.location or ''
        )


def describe(event: Event) -> str:
    """Event description, falling back to its summary."""
    if event.description is not None:
        return event.description
    return event.summary or ''


def format_date(value: datetime) -> str:
    """UTC date as YYYY-MM-DD."""
    return value.astimezone(timezone.utc).strftime('%Y-%m-%d')


def format_time(value: datetime) -> str:
    """UTC time as HH:MM."""
    return value.astimezone(timezone.utc).strftime('%H:%M')
