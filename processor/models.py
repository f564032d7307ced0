"""Data models for calendar cross-referencing."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

# (assignment keyword, event keyword)
KeywordPair = Tuple[str, str]


@dataclass(frozen=True)
class Event:
    """Event extracted from a VEVENT block."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    @property
    def search_text(self) -> str:
        """Lower-cased summary and description used for matching."""
        return f"{self.summary or ''} {self.description or ''}".lower()


@dataclass
class Assignment:
    """Assignment record supplied by the course-data API."""
    id: Any
    name: str
    due_at: Optional[str] = None
    points_possible: Optional[float] = None
    html_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Assignment':
        """
        Build an Assignment from an API record.

        Args:
            data: Dict with at least 'id' and 'name'

        Returns:
            Assignment object

        Raises:
            ValueError: If 'id' or 'name' is missing
        """
        if 'id' not in data or 'name' not in data:
            raise ValueError("Assignment record requires 'id' and 'name'")

        return cls(
            id=data['id'],
            name=str(data['name']),
            due_at=data.get('due_at'),
            points_possible=data.get('points_possible'),
            html_url=data.get('html_url')
        )


@dataclass
class MatchedEvent:
    """Calendar event rendered inside a cross-reference result."""
    date: Optional[str]
    time: Optional[str]
    end_time: Optional[str]
    summary: str
    location: str


@dataclass
class CrossRefResult:
    """Assignment combined with its matched calendar events."""
    assignment: str
    assignment_id: Any
    canvas_due_date: Optional[str]
    has_due_date: bool
    points_possible: Optional[float]
    html_url: Optional[str]
    matched_events: List[MatchedEvent] = field(default_factory=list)
    implied_deadline: Optional[str] = None
    implied_reason: Optional[str] = None

    @property
    def effective_date(self) -> str:
        """Date used for ordering results (ISO strings sort lexically)."""
        if self.implied_deadline is not None:
            return self.implied_deadline
        if self.canvas_due_date is not None:
            return self.canvas_due_date[:10]
        return '9999'

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation; implied fields only when set."""
        data = {
            'assignment': self.assignment,
            'assignment_id': self.assignment_id,
            'canvas_due_date': self.canvas_due_date,
            'has_due_date': self.has_due_date,
            'points_possible': self.points_possible,
            'html_url': self.html_url,
            'matched_events': [
                {
                    'date': ev.date,
                    'time': ev.time,
                    'end_time': ev.end_time,
                    'summary': ev.summary,
                    'location': ev.location
                }
                for ev in self.matched_events
            ]
        }

        if self.implied_deadline is not None:
            data['implied_deadline'] = self.implied_deadline
            data['implied_reason'] = self.implied_reason

        return data
