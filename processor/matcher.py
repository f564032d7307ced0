"""Matcher linking assignment names to calendar events."""
import logging
import re
from typing import FrozenSet, List, Optional, Sequence, Tuple

from processor.models import Event, KeywordPair

logger = logging.getLogger(__name__)

FALLBACK_FUZZY = 'fuzzy'
FALLBACK_DEFAULT_KEYWORDS = 'default_keywords'
FALLBACK_POLICIES = (FALLBACK_FUZZY, FALLBACK_DEFAULT_KEYWORDS)

# Generic Swedish/English words that carry no signal in assignment names
STOP_WORDS: FrozenSet[str] = frozenset({
    'och', 'med', 'för', 'den', 'det', 'att', 'som', 'har', 'till',
    'the', 'and', 'for', 'with', 'from', 'this', 'that',
    'inlämning', 'uppgift', 'assignment', 'task', 'submission',
})

# Course-specific table for schedule feeds that need no per-deployment map
DEFAULT_KEYWORD_MAP: Tuple[KeywordPair, ...] = (
    ('dante', 'digitala mixerbord'),
    ('signalvagar', 'digitala mixerbord'),
    ('signalvägar', 'digitala mixerbord'),
    ('akustik', 'akustik'),
    ('loudness', 'equal loudness'),
    ('immersiv', 'immersiv'),
    ('spatialt', 'immersiv'),
    ('dolby atmos', 'dolby atmos'),
    ('aes', 'aes'),
    ('ai inom', 'ai'),
    ('seminarium', 'seminarium'),
    ('mixning', 'mix'),
    ('lab', 'lab'),
)

TOKEN_SEPARATORS = re.compile(r'[\s:,\-–—()]+')
MIN_TOKEN_LENGTH = 3


class EventMatcher:
    """Matches an assignment name against candidate events."""

    def __init__(
        self,
        stop_words: FrozenSet[str] = STOP_WORDS,
        default_keyword_map: Sequence[KeywordPair] = DEFAULT_KEYWORD_MAP,
        fallback: str = FALLBACK_FUZZY
    ):
        """
        Initialize the matcher.

        Args:
            stop_words: Words ignored when tokenizing assignment names
            default_keyword_map: Pairs used by the default_keywords fallback
            fallback: Strategy when no keyword map is given per call,
                'fuzzy' or 'default_keywords'

        Raises:
            ValueError: If fallback is not a known policy
        """
        if fallback not in FALLBACK_POLICIES:
            raise ValueError(
                f"Unknown match fallback '{fallback}', "
                f"expected one of {', '.join(FALLBACK_POLICIES)}"
            )

        self.stop_words = frozenset(stop_words)
        self.default_keyword_map = tuple(default_keyword_map)
        self.fallback = fallback

    def match(
        self,
        assignment_name: str,
        events: Sequence[Event],
        keyword_map: Optional[Sequence[KeywordPair]] = None
    ) -> List[Event]:
        """
        Find events related to an assignment.

        Args:
            assignment_name: Assignment name as shown in the course
            events: Candidate events
            keyword_map: Explicit keyword pairs; selects keyword matching
                when non-empty

        Returns:
            Matched events, one per start time, sorted by start
        """
        if keyword_map:
            matches = self._match_keywords(assignment_name, events, keyword_map)
        elif self.fallback == FALLBACK_DEFAULT_KEYWORDS:
            matches = self._match_keywords(
                assignment_name, events, self.default_keyword_map
            )
        else:
            matches = self._match_fuzzy(assignment_name, events)

        return self._unique_by_start(matches)

    def tokenize(self, assignment_name: str) -> List[str]:
        """
        Split an assignment name into significant lower-case words.

        Args:
            assignment_name: Assignment name

        Returns:
            Words of at least three characters that are not stop words
        """
        return [
            word for word in TOKEN_SEPARATORS.split(assignment_name.lower())
            if len(word) >= MIN_TOKEN_LENGTH and word not in self.stop_words
        ]

    def _match_keywords(
        self,
        assignment_name: str,
        events: Sequence[Event],
        keyword_map: Sequence[KeywordPair]
    ) -> List[Event]:
        name = assignment_name.lower()
        matches = []

        for assignment_keyword, event_keyword in keyword_map:
            if assignment_keyword.lower() not in name:
                continue
            event_keyword = event_keyword.lower()
            matches.extend(ev for ev in events if event_keyword in ev.search_text)

        return matches

    def _match_fuzzy(
        self,
        assignment_name: str,
        events: Sequence[Event]
    ) -> List[Event]:
        words = self.tokenize(assignment_name)
        if not words:
            logger.debug(f"No significant words in '{assignment_name}'")
            return []

        # Long names need two shared words to avoid incidental hits
        threshold = 2 if len(words) >= 4 else 1
        matches = []

        for ev in events:
            text = ev.search_text
            if sum(1 for word in words if word in text) >= threshold:
                matches.append(ev)

        return matches

    def _unique_by_start(self, matches: List[Event]) -> List[Event]:
        seen = set()
        unique = []

        for ev in matches:
            if ev.start in seen:
                continue
            seen.add(ev.start)
            unique.append(ev)

        return sorted(
            unique,
            key=lambda ev: ev.start.timestamp() if ev.start else 0
        )
