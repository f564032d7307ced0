"""Unit tests for the ICS parser."""
from datetime import datetime, timezone

from processor.ics_parser import (
    decode_text,
    iter_events,
    parse_ics,
    parse_ics_datetime,
    unfold_lines,
)
from processor.models import Event


SAMPLE_CALENDAR = (
    "BEGIN:VCALENDAR\r\n"
    "VERSION:2.0\r\n"
    "PRODID:-//TimeEdit//Schedule//SV\r\n"
    "BEGIN:VEVENT\r\n"
    "UID:1@example.com\r\n"
    "DTSTART:20260220T083000Z\r\n"
    "DTEND:20260220T100000Z\r\n"
    "SUMMARY:Föreläsning\\, Akustik\r\n"
    "LOCATION:Sal A\\, Hus 2\r\n"
    "DESCRIPTION:Rumsakustik och\r\n"
    "  efterklang\r\n"
    "END:VEVENT\r\n"
    "BEGIN:VEVENT\r\n"
    "DTSTART;VALUE=DATE:20260301\r\n"
    "SUMMARY:Seminarium\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


class TestUnfoldLines:
    """Test cases for line unfolding."""

    def test_unfold_crlf_continuation(self):
        """Test that a CRLF fold is removed."""
        assert unfold_lines("SUMMARY:Foo\r\n Bar") == ["SUMMARY:FooBar"]

    def test_unfold_lf_tab_continuation(self):
        """Test that a bare LF followed by a tab is removed."""
        assert unfold_lines("SUMMARY:Foo\n\tBar\nLOCATION:X") == [
            "SUMMARY:FooBar",
            "LOCATION:X"
        ]

    def test_unfold_is_idempotent(self):
        """Test that already unfolded text passes through unchanged."""
        text = "BEGIN:VEVENT\r\nSUMMARY:Lab 1\r\nEND:VEVENT"
        lines = unfold_lines(text)

        assert lines == ["BEGIN:VEVENT", "SUMMARY:Lab 1", "END:VEVENT"]
        assert unfold_lines("\r\n".join(lines)) == lines

    def test_unfold_strips_whitespace(self):
        """Test that logical lines are trimmed."""
        assert unfold_lines("BEGIN:VEVENT  \nEND:VEVENT\r") == [
            "BEGIN:VEVENT",
            "END:VEVENT"
        ]


class TestDecodeText:
    """Test cases for TEXT escape decoding."""

    def test_decode_comma_and_newline(self):
        """Test escaped comma and newline."""
        assert decode_text("Foo\\,bar\\nBaz") == "Foo,bar\nBaz"

    def test_decode_semicolon_and_backslash(self):
        """Test escaped semicolon and backslash."""
        assert decode_text("a\\;b\\\\c") == "a;b\\c"

    def test_decode_plain_text_unchanged(self):
        """Test text without escapes."""
        assert decode_text("Lab 1") == "Lab 1"


class TestParseIcsDatetime:
    """Test cases for date and date-time decoding."""

    def test_utc_datetime(self):
        """Test UTC form with Z suffix."""
        assert parse_ics_datetime("20260220T083000Z") == datetime(
            2026, 2, 20, 8, 30, 0, tzinfo=timezone.utc
        )

    def test_floating_datetime_read_as_utc(self):
        """Test local form without Z."""
        assert parse_ics_datetime("20260220T083015") == datetime(
            2026, 2, 20, 8, 30, 15, tzinfo=timezone.utc
        )

    def test_date_only(self):
        """Test date-only value decodes to UTC midnight."""
        assert parse_ics_datetime("20260220") == datetime(
            2026, 2, 20, tzinfo=timezone.utc
        )

    def test_malformed_value_returns_none(self):
        """Test that unparseable values yield None."""
        assert parse_ics_datetime("not-a-date") is None
        assert parse_ics_datetime("20261340T250000Z") is None
        assert parse_ics_datetime("") is None
        assert parse_ics_datetime("20260220Z") is None


class TestParseIcs:
    """Test cases for event extraction."""

    def test_single_event(self):
        """Test the minimal VEVENT block."""
        events = parse_ics(
            "BEGIN:VEVENT\nDTSTART:20260220T083000Z\nSUMMARY:Lab 1\nEND:VEVENT"
        )

        assert len(events) == 1
        assert events[0].start == datetime(2026, 2, 20, 8, 30, tzinfo=timezone.utc)
        assert events[0].summary == "Lab 1"
        assert events[0].end is None
        assert events[0].location is None
        assert events[0].description is None

    def test_full_calendar(self):
        """Test parsing a calendar with folded lines and parameters."""
        events = parse_ics(SAMPLE_CALENDAR)

        assert len(events) == 2

        first = events[0]
        assert first.start == datetime(2026, 2, 20, 8, 30, tzinfo=timezone.utc)
        assert first.end == datetime(2026, 2, 20, 10, 0, tzinfo=timezone.utc)
        assert first.summary == "Föreläsning, Akustik"
        assert first.location == "Sal A, Hus 2"
        assert first.description == "Rumsakustik och efterklang"

        second = events[1]
        assert second.start == datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert second.summary == "Seminarium"

    def test_escaped_summary(self):
        """Test escape decoding inside an event."""
        events = parse_ics(
            "BEGIN:VEVENT\nSUMMARY:Foo\\,bar\\nBaz\nEND:VEVENT"
        )

        assert events[0].summary == "Foo,bar\nBaz"

    def test_stray_end_is_ignored(self):
        """Test that END:VEVENT outside a block emits nothing."""
        events = parse_ics(
            "END:VEVENT\nBEGIN:VEVENT\nSUMMARY:Lab 1\nEND:VEVENT\nEND:VEVENT"
        )

        assert events == [Event(summary="Lab 1")]

    def test_unterminated_block_is_dropped(self):
        """Test that a block without END:VEVENT yields no event."""
        assert parse_ics("BEGIN:VEVENT\nSUMMARY:Lab 1") == []

    def test_properties_outside_event_are_ignored(self):
        """Test that calendar-level properties do not leak into events."""
        events = parse_ics(
            "SUMMARY:Calendar\nBEGIN:VEVENT\nLOCATION:Studio\nEND:VEVENT"
        )

        assert events == [Event(location="Studio")]

    def test_nested_begin_restarts_event(self):
        """Test that a second BEGIN:VEVENT discards the partial event."""
        events = parse_ics(
            "BEGIN:VEVENT\n"
            "SUMMARY:Abandoned\n"
            "LOCATION:Nowhere\n"
            "BEGIN:VEVENT\n"
            "SUMMARY:Kept\n"
            "END:VEVENT"
        )

        assert events == [Event(summary="Kept")]

    def test_malformed_date_does_not_abort_parse(self):
        """Test that a bad DTSTART leaves start empty and parsing continues."""
        events = parse_ics(
            "BEGIN:VEVENT\nDTSTART:garbage\nSUMMARY:Lab 1\nEND:VEVENT\n"
            "BEGIN:VEVENT\nDTSTART:20260221\nSUMMARY:Lab 2\nEND:VEVENT"
        )

        assert len(events) == 2
        assert events[0].start is None
        assert events[0].summary == "Lab 1"
        assert events[1].start == datetime(2026, 2, 21, tzinfo=timezone.utc)

    def test_unknown_keys_are_ignored(self):
        """Test that unrecognized properties do not error."""
        events = parse_ics(
            "BEGIN:VEVENT\nUID:abc\nX-CUSTOM;FOO=bar:baz\nSUMMARY:Lab\nEND:VEVENT"
        )

        assert events == [Event(summary="Lab")]

    def test_colon_in_value_is_kept(self):
        """Test that only the first colon separates key and value."""
        events = parse_ics(
            "BEGIN:VEVENT\nDESCRIPTION:Zoom: https://example.com\nEND:VEVENT"
        )

        assert events[0].description == "Zoom: https://example.com"

    def test_iter_events_is_lazy(self):
        """Test that iter_events yields events one at a time."""
        iterator = iter_events(SAMPLE_CALENDAR)

        assert next(iterator).summary == "Föreläsning, Akustik"
        assert next(iterator).summary == "Seminarium"
        assert next(iterator, None) is None
