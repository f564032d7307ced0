"""Parser for the subset of iCalendar (RFC 5545) used by schedule feeds."""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

from processor.models import Event

logger = logging.getLogger(__name__)

# A line break followed by a single space or tab continues the previous line
FOLD_PATTERN = re.compile(r'\r?\n[ \t]')
LINE_BREAK_PATTERN = re.compile(r'\r?\n')
ESCAPE_PATTERN = re.compile(r'\\([\\;,nN])')

BEGIN_EVENT = 'BEGIN:VEVENT'
END_EVENT = 'END:VEVENT'

DATETIME_FIELDS = {'DTSTART': 'start', 'DTEND': 'end'}
TEXT_FIELDS = {
    'SUMMARY': 'summary',
    'LOCATION': 'location',
    'DESCRIPTION': 'description'
}


@dataclass(frozen=True)
class Outside:
    """Parser state between VEVENT blocks."""


@dataclass
class InProgress:
    """Parser state inside a VEVENT block, holding the fields seen so far."""
    fields: Dict[str, Any] = field(default_factory=dict)


ParserState = Union[Outside, InProgress]


def unfold_lines(text: str) -> List[str]:
    """
    Unfold RFC 5545 continuation lines and split into logical lines.

    Args:
        text: Raw ICS text with CRLF or LF line endings

    Returns:
        List of stripped logical lines
    """
    unfolded = FOLD_PATTERN.sub('', text)
    return [line.strip() for line in LINE_BREAK_PATTERN.split(unfolded)]


def decode_text(value: str) -> str:
    """Decode ICS TEXT escapes (\\, \\; \\n \\N \\\\)."""
    return ESCAPE_PATTERN.sub(
        lambda m: '\n' if m.group(1) in 'nN' else m.group(1),
        value
    )


def parse_ics_datetime(value: str) -> Optional[datetime]:
    """
    Decode an ICS DATE or DATE-TIME value into an aware UTC datetime.

    Floating local times are read as UTC; TZID parameters are not
    interpreted.

    Args:
        value: Value such as '20260220T083000Z', '20260220T083000' or '20260220'

    Returns:
        datetime in UTC or None if the value cannot be decoded
    """
    raw = value.strip()
    is_utc = raw.endswith('Z')
    if is_utc:
        raw = raw[:-1]

    try:
        year = int(raw[0:4])
        month = int(raw[4:6])
        day = int(raw[6:8])

        if not is_utc and 'T' not in raw:
            return datetime(year, month, day, tzinfo=timezone.utc)

        return datetime(
            year, month, day,
            int(raw[9:11]),
            int(raw[11:13]),
            int(raw[13:15]),
            tzinfo=timezone.utc
        )
    except ValueError as e:
        logger.debug(f"Ignoring malformed date value '{value}': {e}")
        return None


def _apply_property(fields: Dict[str, Any], line: str) -> None:
    """Store a KEY[;params]:VALUE line into the in-progress event fields."""
    key_part, _, value = line.partition(':')
    key = key_part.split(';', 1)[0]

    if key in DATETIME_FIELDS:
        fields[DATETIME_FIELDS[key]] = parse_ics_datetime(value)
    elif key in TEXT_FIELDS:
        fields[TEXT_FIELDS[key]] = decode_text(value)


def iter_events(text: str) -> Iterator[Event]:
    """
    Lazily extract events from ICS text in source order.

    Unterminated blocks produce nothing. A BEGIN:VEVENT inside an open
    block discards the partial event and starts over.

    Args:
        text: Raw ICS text

    Yields:
        Event objects
    """
    state: ParserState = Outside()

    for line in unfold_lines(text):
        if line == BEGIN_EVENT:
            if isinstance(state, InProgress):
                logger.debug("Nested BEGIN:VEVENT, discarding partial event")
            state = InProgress()
        elif line == END_EVENT:
            if isinstance(state, InProgress):
                yield Event(**state.fields)
                state = Outside()
        elif isinstance(state, InProgress) and ':' in line:
            _apply_property(state.fields, line)


def parse_ics(text: str) -> List[Event]:
    """
    Parse ICS text into a list of events.

    Args:
        text: Raw ICS text

    Returns:
        List of Event objects
    """
    events = list(iter_events(text))
    logger.info(f"Parsed {len(events)} events from calendar")
    return events
