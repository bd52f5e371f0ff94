"""Ordered category matchers for conversation transcripts.

Each CategoryMatcher pairs a matcher (text -> raw hits) with a builder
(hit -> candidate fact). The extractor evaluates the table in order;
singular categories keep their first hit, list categories keep every
distinct hit. Confidence is fixed per category.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from touchpoint.config.models.extraction import ExtractionConfig
from touchpoint.extraction.models import MatchCategory
from touchpoint.facts.enums import FactType
from touchpoint.facts.models import qualified_fact_type
from touchpoint.state.models import EmotionalState, Goal, Interest, LifeEvent, Pet, Relationship

# Confidence per signal kind
BUSINESS_EVENT_CONFIDENCE = 1.0
LOCATION_CONFIDENCE = 0.95
ISSUE_CONFIDENCE = 0.9
PET_CONFIDENCE = 0.85
RELATIONSHIP_CONFIDENCE = 0.8
INTEREST_CONFIDENCE = 0.8
EMOTION_CONFIDENCE = 0.75
LIFE_EVENT_CONFIDENCE = 0.7
GOAL_CONFIDENCE = 0.7

Hit = dict[str, Any]


@dataclass(frozen=True)
class Candidate:
    """Entity recognised in a transcript, ready to become a fact."""

    fact_type: str
    value: Any
    entity: Any


@dataclass(frozen=True)
class CategoryMatcher:
    """One row of the matcher table."""

    category: MatchCategory
    matcher: Callable[[str], list[Hit]]
    builder: Callable[[Hit], Candidate]
    confidence: float
    singular: bool
    personal: bool  # reads the policy-selected personal text


# --- pet ---

_PET_SPECIES = r"cat|dog|pet|puppy|kitten"
PET_PATTERN = re.compile(
    rf"\b(?:my\s+)?({_PET_SPECIES})\s+(?:named?\s+)?(?!(?:{_PET_SPECIES})\b)([A-Za-z]\w*)",
    re.IGNORECASE,
)
BREEDS = (
    "Scottish Fold", "Persian", "Siamese", "Golden Retriever", "Labrador", "Bulldog", "Poodle",
)
BREED_PATTERN = re.compile(r"\b(" + "|".join(BREEDS) + r")s?\b", re.IGNORECASE)
_NOT_A_NAME = frozenset({
    "a", "an", "and", "at", "but", "care", "food", "for", "got", "had", "has", "hair",
    "in", "is", "keeps", "needs", "of", "on", "sitter", "so", "that", "the", "to",
    "too", "was", "who", "will", "with",
})


def match_pet(text: str) -> list[Hit]:
    breed_match = BREED_PATTERN.search(text)
    breed = None
    if breed_match:
        breed = next(b for b in BREEDS if b.lower() == breed_match.group(1).lower())

    hits = []
    for match in PET_PATTERN.finditer(text):
        name = match.group(2)
        if name.lower() in _NOT_A_NAME:
            continue
        hits.append({"species": match.group(1).lower(), "name": name, "breed": breed})
    return hits


def build_pet(hit: Hit) -> Candidate:
    pet = Pet(
        name=hit["name"],
        species=hit["species"],
        breed=hit["breed"],
        significance="Mentioned in conversation",
    )
    return Candidate(FactType.HAS_PET.value, pet.model_dump(exclude_none=True), pet)


# --- relationship ---

RELATIONSHIP_PATTERNS: tuple[tuple[re.Pattern[str], str, str], ...] = (
    (re.compile(r"\b(?:mom|mother)\b", re.IGNORECASE), "Mom", "parent"),
    (re.compile(r"\b(?:dad|father)\b", re.IGNORECASE), "Dad", "parent"),
    (re.compile(r"\b(?:grandma|grandmother)\b", re.IGNORECASE), "Grandma", "grandparent"),
    (re.compile(r"\b(?:grandpa|grandfather)\b", re.IGNORECASE), "Grandpa", "grandparent"),
    (re.compile(r"\bsister\b", re.IGNORECASE), "Sister", "sibling"),
    (re.compile(r"\bbrother\b", re.IGNORECASE), "Brother", "sibling"),
)
# Capitalised place named later in the same sentence
RELATIVE_LOCATION_PATTERN = re.compile(
    r"[^.!?\n]*?\b(?i:lives\s+in|in|from)\s+([A-Z][A-Za-z]+)"
)


def match_relationships(text: str) -> list[Hit]:
    hits = []
    for pattern, name, relationship_type in RELATIONSHIP_PATTERNS:
        found = pattern.search(text)
        if found is None:
            continue
        location = RELATIVE_LOCATION_PATTERN.match(text, found.end())
        hits.append({
            "name": name,
            "relationship_type": relationship_type,
            "location": location.group(1) if location else None,
        })
    return hits


def build_relationship(hit: Hit) -> Candidate:
    relationship = Relationship(
        name=hit["name"],
        relationship_type=hit["relationship_type"],
        closeness="close",
        location=hit["location"],
    )
    return Candidate(
        qualified_fact_type(FactType.HAS_RELATIONSHIP, relationship.name),
        relationship.model_dump(exclude_none=True),
        relationship,
    )


# --- emotion ---

EMOTION_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("stressed", re.compile(r"\b(?:stressed|stress|stressful)\b", re.IGNORECASE)),
    ("anxious", re.compile(r"\b(?:anxious|anxiety|worried|worry)\b", re.IGNORECASE)),
    ("happy", re.compile(r"\b(?:happy|excited|great|wonderful)\b", re.IGNORECASE)),
    ("sad", re.compile(r"\b(?:sad|upset|down|depressed)\b", re.IGNORECASE)),
    ("tired", re.compile(r"\b(?:tired|exhausted|drained)\b", re.IGNORECASE)),
)
TIRED_PATTERN = re.compile(r"\b(?:tired|exhausted)\b", re.IGNORECASE)
HIGH_STRESS_MOODS = frozenset({"stressed", "anxious"})


def match_emotions(text: str) -> list[Hit]:
    energy = "tired" if TIRED_PATTERN.search(text) else "medium"
    return [
        {"mood": mood, "energy_level": energy}
        for mood, pattern in EMOTION_PATTERNS
        if pattern.search(text)
    ]


def build_emotion(hit: Hit) -> Candidate:
    state = EmotionalState(
        mood=hit["mood"],
        energy_level=hit["energy_level"],
        stress_level=7 if hit["mood"] in HIGH_STRESS_MOODS else 3,
        context="Detected from conversation",
    )
    return Candidate(FactType.EMOTIONAL_STATE.value, state.model_dump(exclude_none=True), state)


# --- interest ---

INTEREST_PATTERNS: tuple[tuple[re.Pattern[str], str, str, str], ...] = (
    (re.compile(r"\bGenshin Impact\b", re.IGNORECASE), "games", "Genshin Impact", "passionate"),
    (re.compile(r"\bFinal Fantasy\b", re.IGNORECASE), "games", "Final Fantasy", "enthusiast"),
    (re.compile(r"\b(?:K-pop|BTS|BLACKPINK)\b", re.IGNORECASE), "music", "K-pop", "passionate"),
    (re.compile(r"\b(?:anime|manga)\b", re.IGNORECASE),
     "entertainment", "Anime/Manga", "enthusiast"),
    (re.compile(r"\bphotography\b", re.IGNORECASE), "hobby", "Photography", "interested"),
    (re.compile(r"\bgaming\b", re.IGNORECASE), "hobby", "Gaming", "enthusiast"),
)


def match_interests(text: str) -> list[Hit]:
    return [
        {"category": category, "specific_interest": name, "enthusiasm_level": level}
        for pattern, category, name, level in INTEREST_PATTERNS
        if pattern.search(text)
    ]


def build_interest(hit: Hit) -> Candidate:
    interest = Interest(**hit)
    return Candidate(
        qualified_fact_type(FactType.HAS_INTEREST, interest.specific_interest),
        interest.model_dump(exclude_none=True),
        interest,
    )


# --- life event ---

LIFE_EVENT_PATTERNS: tuple[tuple[re.Pattern[str], str, str, str], ...] = (
    (
        re.compile(r"birthday|celebration|turning \d+", re.IGNORECASE),
        "celebration",
        "Family celebration mentioned",
        "happy",
    ),
    (
        re.compile(r"visit|reunion|haven't seen", re.IGNORECASE),
        "family_reunion",
        "Family visit/reunion planned",
        "very_happy",
    ),
)


def match_life_events(text: str) -> list[Hit]:
    return [
        {"event_type": event_type, "description": description, "emotional_impact": impact}
        for pattern, event_type, description, impact in LIFE_EVENT_PATTERNS
        if pattern.search(text)
    ]


def build_life_event(hit: Hit) -> Candidate:
    event = LifeEvent(**hit)
    return Candidate(
        qualified_fact_type(FactType.EXPERIENCED, event.event_type),
        event.model_dump(exclude_none=True),
        event,
    )


# --- goal ---

GOAL_PATTERN = re.compile(
    r"\b(?:want to|planning to|hope to|going to(?=\s+visit))\s+(.+?)(?=[.,!?\n]|$)",
    re.IGNORECASE,
)


def goal_matcher(max_length: int) -> Callable[[str], list[Hit]]:
    """Build a goal matcher truncating descriptions to ``max_length``."""

    def match_goals(text: str) -> list[Hit]:
        hits = []
        for match in GOAL_PATTERN.finditer(text):
            description = match.group(1).strip()[:max_length].strip()
            if description:
                hits.append({"description": description})
        return hits

    return match_goals


def build_goal(hit: Hit) -> Candidate:
    goal = Goal(goal_type="personal", description=hit["description"], progress="in_progress")
    return Candidate(
        qualified_fact_type(FactType.HAS_GOAL, goal.description),
        goal.model_dump(exclude_none=True),
        goal,
    )


# --- location ---

COUNTRIES = ("Japan", "Singapore", "Malaysia", "Thailand", "Indonesia", "Vietnam", "Australia")
LOCATION_PATTERN = re.compile(
    r"\b(?:in|at|from)\s+(" + "|".join(COUNTRIES) + r")\b", re.IGNORECASE
)


def match_location(text: str) -> list[Hit]:
    hits = []
    for match in LOCATION_PATTERN.finditer(text):
        country = next(c for c in COUNTRIES if c.lower() == match.group(1).lower())
        hits.append({"country": country})
    return hits


def build_location(hit: Hit) -> Candidate:
    return Candidate(FactType.USER_IN_COUNTRY.value, hit["country"], hit["country"])


# --- issue ---

ISSUE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"roaming|signal|network|connectivity", re.IGNORECASE),
     "International Roaming Not Connecting"),
    (re.compile(r"bill|charge|payment|expensive", re.IGNORECASE), "Billing Dispute"),
)


def match_issues(text: str) -> list[Hit]:
    return [{"issue": issue} for pattern, issue in ISSUE_PATTERNS if pattern.search(text)]


def build_issue(hit: Hit) -> Candidate:
    return Candidate(FactType.HAS_OPEN_ISSUE.value, hit["issue"], hit["issue"])


def default_matchers(config: ExtractionConfig | None = None) -> tuple[CategoryMatcher, ...]:
    """The matcher table, in evaluation order."""
    config = config or ExtractionConfig()
    return (
        CategoryMatcher(MatchCategory.PET, match_pet, build_pet, PET_CONFIDENCE,
                        singular=True, personal=True),
        CategoryMatcher(MatchCategory.RELATIONSHIP, match_relationships, build_relationship,
                        RELATIONSHIP_CONFIDENCE, singular=False, personal=True),
        CategoryMatcher(MatchCategory.EMOTION, match_emotions, build_emotion, EMOTION_CONFIDENCE,
                        singular=True, personal=True),
        CategoryMatcher(MatchCategory.INTEREST, match_interests, build_interest,
                        INTEREST_CONFIDENCE, singular=False, personal=True),
        CategoryMatcher(MatchCategory.LIFE_EVENT, match_life_events, build_life_event,
                        LIFE_EVENT_CONFIDENCE, singular=False, personal=True),
        CategoryMatcher(MatchCategory.GOAL, goal_matcher(config.goal_max_length), build_goal,
                        GOAL_CONFIDENCE, singular=False, personal=True),
        CategoryMatcher(MatchCategory.LOCATION, match_location, build_location,
                        LOCATION_CONFIDENCE, singular=True, personal=False),
        CategoryMatcher(MatchCategory.ISSUE, match_issues, build_issue, ISSUE_CONFIDENCE,
                        singular=True, personal=False),
    )
