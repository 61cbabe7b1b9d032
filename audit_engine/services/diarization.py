"""
Transcript Diarizer Service

Parses raw transcript text into timestamped turns and assigns each turn a speaker
role (Agent or Prospect).

Pass 1, line parsing:
    Each non-empty line may start with a timestamp token ("[0:12]", "(0:12)", "0:12")
    followed by a "Label:" prefix. Lines written as "Label [0:12]: text" are also
    recognised. Lines without a timestamp or label inherit the most recent one
    (continuation lines), seeded with "0:00" / "Unknown".

Pass 2, role resolution (label-trust-first):
    1. A definitive label is trusted outright: it contains a fragment of the agent's
       name or agent/rep/specialist (Agent), or customer/prospect/caller (Prospect).
    2. Otherwise a signed semantic score is computed from an ordered set of lexical
       rules (script, disclosure, verification and handoff phrases lean Agent; short
       affirmatives, self-identification and objections lean Prospect). Scores at or
       beyond the thresholds decide the role; anything in between inherits the
       previous turn's role, and the first ambiguous turn is a Prospect.

The thresholds are tuning parameters (settings.agent_score_threshold /
settings.prospect_score_threshold), not invariants.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from audit_engine.core.config import get_settings
from audit_engine.models.enums import SpeakerRole
from audit_engine.models.schemas import (
    RoleMetrics,
    SpeakerMetrics,
    TimelineMarker,
    TranscriptTurn,
)
from audit_engine.services.timestamps import format_seconds, parse_timestamp

logger = logging.getLogger(__name__)


# =============================================================================
# Line Parsing Patterns
# =============================================================================

LEADING_TIMESTAMP = re.compile(r"^[\(\[]?(\d{1,2}:\d{2}(?::\d{2})?)[\)\]]?\s*")
LABEL_WITH_TIMESTAMP = re.compile(r"^([^:\[\(]{1,40}?)\s*[\[\(](\d{1,2}:\d{2})[\]\)]\s*:\s*(.*)$")
LABEL_PREFIX = re.compile(r"^([^:\[\(]{1,40}):\s*(.*)$")

DEFAULT_LABEL = "Unknown"
DEFAULT_TIME = "0:00"

AGENT_LABEL_KEYWORDS = ("agent", "rep", "specialist")
PROSPECT_LABEL_KEYWORDS = ("customer", "prospect", "caller")

# Agent name fragments this short are too ambiguous to match labels or text
MIN_NAME_PART_LENGTH = 3


@dataclass
class ParsedLine:
    index: int
    label: str
    time: str
    start_seconds: float
    content: str


def parse_lines(transcript: str) -> List[ParsedLine]:
    """
    Split a transcript into lines with carried-forward labels and timestamps.

    Args:
        transcript: Raw transcript text

    Returns:
        One ParsedLine per non-empty line
    """
    lines: List[ParsedLine] = []
    last_label = DEFAULT_LABEL
    last_time = DEFAULT_TIME
    last_seconds = 0.0

    for raw in (transcript or "").splitlines():
        content = raw.strip()
        if not content:
            continue

        time: Optional[str] = None
        label: Optional[str] = None

        time_match = LEADING_TIMESTAMP.match(content)
        if time_match:
            time = time_match.group(1)
            content = content[time_match.end():]
        else:
            labelled = LABEL_WITH_TIMESTAMP.match(content)
            if labelled:
                label = labelled.group(1).strip() or None
                time = labelled.group(2)
                content = labelled.group(3)

        if label is None:
            label_match = LABEL_PREFIX.match(content)
            if label_match and label_match.group(1).strip():
                label = label_match.group(1).strip()
                content = label_match.group(2)

        if label:
            last_label = label
        if time:
            last_time = time
            last_seconds = parse_timestamp(time)

        lines.append(ParsedLine(
            index=len(lines),
            label=last_label,
            time=last_time,
            start_seconds=last_seconds,
            content=content.strip(),
        ))

    return lines


# =============================================================================
# Semantic Rules
# =============================================================================

@dataclass
class LineText:
    """Lowercased turn text plus what the rules need to know about the call."""
    text: str
    agent_parts: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.text)

    def has(self, *phrases: str) -> bool:
        return any(phrase in self.text for phrase in phrases)

    def matches(self, pattern: str) -> bool:
        return re.search(pattern, self.text) is not None


SemanticRule = Tuple[int, Callable[[LineText], bool]]

# Evaluated in order; every matching rule contributes its points.
SEMANTIC_RULES: Tuple[SemanticRule, ...] = (
    # Length: scripts are verbose, customer answers are short
    (8, lambda t: t.length > 150),
    (4, lambda t: 80 < t.length <= 150),
    (-4, lambda t: t.length < 20),

    # Disclosure and introduction
    (12, lambda t: t.has("recorded line", "recorded call")),
    (8, lambda t: t.has("calling from", "calling on behalf")),
    (10, lambda t: t.has("my name is") and any(part in t.text for part in t.agent_parts)),
    (6, lambda t: t.has("reason for the call")),
    (3, lambda t: t.has("looking for") and t.length < 60),

    # Scripted pitch
    (10, lambda t: t.has("additional benefits", "new benefits")),
    (8, lambda t: t.has("making sure you", "just making sure")),
    (8, lambda t: t.has("not missing out", "don't miss out")),
    (10, lambda t: t.has("i do need to confirm", "need to confirm with you")),
    (6, lambda t: t.has("is that correct", "that correct?")),
    (8, lambda t: t.has("you qualify", "may qualify")),
    (8, lambda t: t.has("benefits released", "been released")),
    (8, lambda t: t.has("we're calling", "we are calling")),
    (6, lambda t: t.has("wanted to reach out", "reaching out")),

    # Eligibility verification
    (12, lambda t: t.has("medicare") and t.has("medicaid", "work insurance")),
    (10, lambda t: t.has("don't have any type of", "do not have any type of")),
    (10, lambda t: t.has("part a") and t.has("part b")),
    (8, lambda t: t.has("red, white and blue", "red white and blue")),
    (8, lambda t: t.has("state of") and t.has("zip")),

    # Transitions
    (8, lambda t: t.has("all right, perfect", "alright, perfect", "all right perfect")),
    (6, lambda t: t.has("perfect, so", "great, so", "okay, so")),
    (5, lambda t: t.has("that's great", "that's perfect", "that's wonderful")),
    (8, lambda t: t.has("let me") and t.has("connect", "transfer", "verify")),
    (6, lambda t: t.has("i'm going to", "going to connect")),

    # Warm handoff
    (15, lambda t: t.has("take it from here", "take the call from here")),
    (12, lambda t: t.has("specialist take", "let the specialist")),
    (15, lambda t: t.has("i have") and t.has("in the state", "confirmed medicare")),
    (15, lambda t: t.has("please take it from here")),
    (10, lambda t: t.has("i'll introduce you", "introduce you quickly")),
    (8, lambda t: t.has("connecting over", "connecting through")),
    (8, lambda t: t.has("we should be connected", "we are connected")),
    (8, lambda t: t.has("elevator music", "slight ringing")),

    # Process
    (6, lambda t: t.has("just to confirm", "just to verify")),
    (6, lambda t: t.has("last thing") and t.has("confirm")),
    (8, lambda t: t.has("that's everything i need")),
    (10, lambda t: t.has("do you still have") and t.has("part a", "part b", "medicare")),

    # Confirmation and location questions
    (12, lambda t: t.matches(r"^(correct|right|okay|ok|is that right|is that correct)\?$")),
    (15, lambda t: t.matches(r"and you('re| are) in [a-z]+\??")),
    (12, lambda t: t.has("you're in", "you are in", "in michigan", "in florida", "in texas") and t.has("?")),
    (10, lambda t: t.matches(r"^(great|perfect|wonderful|excellent|okay|alright|all right)[.,!]?\s+(and|so|now)")),
    (12, lambda t: t.matches(r"^(great|perfect)\.\s+.*\?$")),
    (10, lambda t: t.has("just to be sure", "just to make sure")),

    # Customer signals
    (-10, lambda t: t.has("who is this")),
    (-12, lambda t: t.has("stop calling", "do not call")),
    (-15, lambda t: t.has("this is she", "this is he") and not t.has("in the state", "take it from")),
    (-12, lambda t: t.matches(r"^this is [a-z]+\.?$") and t.length < 25),
    (-10, lambda t: t.matches(r"^speaking\.?$")),
    (-6, lambda t: t.has("subsidy for what", "what is this about")),
    (-8, lambda t: t.has("how did you get my number")),

    # Short responses
    (-10, lambda t: t.matches(
        r"^(yes|yeah|yep|yup|okay|ok|sure|alright|mhmm|mm-hmm|uh-huh|right|that's right)\.?$"
    )),
    (-10, lambda t: t.matches(r"^correct\.$")),
    (-10, lambda t: t.matches(r"^(no|nope|not really|i don't think so)\.?$")),
    (-8, lambda t: t.matches(r"^(as well|you too|have a good day|thank you|thanks|bye|goodbye)\.?$")),
    (-6, lambda t: t.matches(r"^(hello|hi|hey)\.?\??$") and t.length < 10),
)


def agent_name_parts(agent_name: Optional[str]) -> Tuple[str, ...]:
    """Lowercased agent name fragments long enough to be meaningful."""
    return tuple(
        part for part in (agent_name or "").lower().split()
        if len(part) >= MIN_NAME_PART_LENGTH
    )


def semantic_score(content: str, agent_parts: Sequence[str] = ()) -> int:
    """Signed score of a turn's text: positive leans Agent, negative leans Prospect."""
    line = LineText(text=content.strip().lower(), agent_parts=tuple(agent_parts))
    return sum(points for points, rule in SEMANTIC_RULES if rule(line))


def definitive_role(label: str, agent_parts: Sequence[str] = ()) -> Optional[SpeakerRole]:
    """Role implied by a speaker label, or None when the label is not definitive."""
    if label == DEFAULT_LABEL:
        return None
    lower = label.lower()
    if any(part in lower for part in agent_parts):
        return SpeakerRole.AGENT
    if any(keyword in lower for keyword in AGENT_LABEL_KEYWORDS):
        return SpeakerRole.AGENT
    if any(keyword in lower for keyword in PROSPECT_LABEL_KEYWORDS):
        return SpeakerRole.PROSPECT
    return None


# =============================================================================
# Diarization
# =============================================================================

def diarize_transcript(
    transcript: str,
    agent_name: Optional[str] = None,
    markers: Sequence[TimelineMarker] = (),
    agent_threshold: Optional[int] = None,
    prospect_threshold: Optional[int] = None,
    last_turn_padding: Optional[float] = None,
) -> List[TranscriptTurn]:
    """
    Parse a transcript into turns with resolved speaker roles.

    Args:
        transcript: Raw transcript text
        agent_name: Known agent name; its fragments mark definitive labels
        markers: Resolved timeline markers to associate with turns
        agent_threshold: Score at or above which a turn is Agent
        prospect_threshold: Score at or below which a turn is Prospect
        last_turn_padding: Seconds added to the last turn's start for its end

    Returns:
        TranscriptTurn list in transcript order. Deterministic for identical input.
    """
    settings = get_settings()
    if agent_threshold is None:
        agent_threshold = settings.agent_score_threshold
    if prospect_threshold is None:
        prospect_threshold = settings.prospect_score_threshold
    if last_turn_padding is None:
        last_turn_padding = settings.last_turn_padding_seconds

    parts = agent_name_parts(agent_name)
    lines = parse_lines(transcript)

    turns: List[TranscriptTurn] = []
    previous_role: Optional[SpeakerRole] = None

    for position, line in enumerate(lines):
        score = semantic_score(line.content, parts)
        role = definitive_role(line.label, parts)
        is_definitive = role is not None

        if role is None:
            if score >= agent_threshold:
                role = SpeakerRole.AGENT
            elif score <= prospect_threshold:
                role = SpeakerRole.PROSPECT
            else:
                role = previous_role or SpeakerRole.PROSPECT

        if position + 1 < len(lines):
            end_seconds = lines[position + 1].start_seconds
        else:
            end_seconds = line.start_seconds + last_turn_padding

        associated = [
            marker for marker in markers
            if line.start_seconds <= marker.seconds < end_seconds
        ]

        turns.append(TranscriptTurn(
            index=line.index,
            speakerLabel=line.label,
            role=role,
            content=line.content,
            time=line.time,
            startSeconds=line.start_seconds,
            endSeconds=end_seconds,
            semanticScore=score,
            labelDefinitive=is_definitive,
            associatedMarkers=associated,
        ))
        previous_role = role

    logger.debug(f"Diarized {len(turns)} transcript turns")
    return turns


def _role_metrics(turns: Sequence[TranscriptTurn], total_seconds: float) -> RoleMetrics:
    seconds = sum(max(0.0, turn.endSeconds - turn.startSeconds) for turn in turns)
    percentage = int(seconds / total_seconds * 100 + 0.5) if total_seconds > 0 else 0
    return RoleMetrics(
        turnCount=len(turns),
        speakingTimeSeconds=seconds,
        speakingTimeFormatted=format_seconds(seconds),
        speakingPercentage=percentage,
    )


def compute_speaker_metrics(turns: Sequence[TranscriptTurn]) -> SpeakerMetrics:
    """
    Per-role talk-time metrics.

    Speaking time is the sum of each turn's (end - start). Percentages are 0 when
    no speaking time was measured.
    """
    total_seconds = sum(max(0.0, turn.endSeconds - turn.startSeconds) for turn in turns)
    agent_turns = [turn for turn in turns if turn.role == SpeakerRole.AGENT]
    prospect_turns = [turn for turn in turns if turn.role == SpeakerRole.PROSPECT]

    return SpeakerMetrics(
        agent=_role_metrics(agent_turns, total_seconds),
        prospect=_role_metrics(prospect_turns, total_seconds),
        total=_role_metrics(list(turns), total_seconds),
    )
