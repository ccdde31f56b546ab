"""Format detectors and the score type they share."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from types import MappingProxyType


@dataclasses.dataclass(frozen=True, slots=True)
class CandidateScore:
    """The score of one candidate value for a format property.

    ``score`` is the weighted 0.0-1.0 composite, ``confidence`` its 0-100
    rendering and ``components`` the sub-scores it was built from.
    """

    candidate: str
    score: float
    confidence: int
    components: Mapping[str, float] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )

    def to_dict(self) -> dict[str, object]:
        """Convert this score to a plain dict.

        :returns: A dict with ``'candidate'``, ``'score'``, ``'confidence'``
            and one key per sub-score.
        """
        return {
            "candidate": self.candidate,
            "score": self.score,
            "confidence": self.confidence,
            **self.components,
        }


def rank_candidates(scores: Iterable[CandidateScore]) -> list[CandidateScore]:
    """Sort scores best first; ties keep candidate declaration order."""
    return sorted(scores, key=lambda s: s.score, reverse=True)
