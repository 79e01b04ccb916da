"""Substitute star counts for modules hosted outside GitHub."""

from dataclasses import dataclass, field
from typing import Dict

# Hand-picked base scores for known non-GitHub modules.
NON_GITHUB_STARS: Dict[str, int] = {
    "MMM-bergfex": 1,
    "MMM-Flights": 2,
    "MMM-InstagramView": 1,
    "mmm-ratp": 2,
    "MMM-NCTtimes": 1,
    "MMM-RecyclingCalendar": 1,
    "MMM-RepoStats": 2,
    "MMM-YouTubeWebView": 1,
}


@dataclass(frozen=True)
class StarPolicy:
    """
    Star counts for modules whose stars cannot be queried.

    Far fewer users have accounts on the other hosts, so every base score is
    multiplied by ``boost``. Unknown names get ``default``.
    """

    scores: Dict[str, int] = field(default_factory=lambda: dict(NON_GITHUB_STARS))
    default: int = 1
    boost: int = 3

    def stars_for(self, name: str) -> int:
        return self.scores.get(name, self.default) * self.boost
