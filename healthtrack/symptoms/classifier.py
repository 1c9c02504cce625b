"""Keyword-rule classifier that infers a symptom category from free text."""

from __future__ import annotations

from collections.abc import Sequence

from healthtrack.models import SymptomType

_EMOTIONAL_KEYWORDS = (
    "anxiety",
    "anxious",
    "depress",
    "sad",
    "mood",
    "anger",
    "irritab",
    "stress",
    "panic",
    "fear",
    "lonely",
)

_MENTAL_KEYWORDS = (
    "focus",
    "memory",
    "concentrat",
    "insomnia",
    "sleep",
    "adhd",
    "brain fog",
    "confus",
    "hallucin",
    "delusion",
    "cognitive",
)

_PHYSICAL_KEYWORDS = (
    "pain",
    "ache",
    "fever",
    "cough",
    "nausea",
    "vomit",
    "dizziness",
    "rash",
    "injury",
    "cramp",
    "chest",
    "breath",
    "headache",
    "throat",
    "stomach",
    "diarrhea",
    "fatigue",
    "swelling",
    "back",
    "arm",
    "leg",
    "ear",
    "nose",
    "flu",
    "cold",
)

KeywordRule = tuple[SymptomType, Sequence[str]]

# Order is the tie-break: the first rule with a hit wins.
DEFAULT_KEYWORD_RULES: tuple[KeywordRule, ...] = (
    (SymptomType.EMOTIONAL, _EMOTIONAL_KEYWORDS),
    (SymptomType.MENTAL, _MENTAL_KEYWORDS),
    (SymptomType.PHYSICAL, _PHYSICAL_KEYWORDS),
)


class SymptomClassifier:
    """Ordered substring rules over the lower-cased symptom text."""

    def __init__(
        self,
        rules: Sequence[KeywordRule] = DEFAULT_KEYWORD_RULES,
        default: SymptomType = SymptomType.PHYSICAL,
    ) -> None:
        if default is SymptomType.OTHER:
            raise ValueError("OTHER is reserved for unrecognised stored types.")
        for category, _ in rules:
            if category is SymptomType.OTHER:
                raise ValueError("OTHER is reserved for unrecognised stored types.")
        self.rules = tuple((category, tuple(k.lower() for k in keywords)) for category, keywords in rules)
        self.default = default

    def classify(self, *texts: str | None) -> SymptomType:
        """Classify the concatenation of the given texts (short name, description, notes)."""
        text = " ".join(t for t in texts if t).lower()
        for category, keywords in self.rules:
            if any(keyword in text for keyword in keywords):
                return category
        return self.default


default_classifier = SymptomClassifier()
