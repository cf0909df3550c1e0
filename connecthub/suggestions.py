"""Friend suggestion scoring by interest overlap."""
import math
from typing import Iterable, List, Sequence

MAX_SUGGESTIONS = 10


def normalize_interests(interests: Iterable[str]) -> List[str]:
    """Strip tags, drop blanks and duplicates, keep first-seen order."""
    seen = set()
    result = []
    for interest in interests or []:
        tag = str(interest).strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def similarity_score(my_interests: Sequence[str], common_count: int) -> int:
    """Percentage of ``my_interests`` shared, 0 when I have none."""
    if not my_interests:
        return 0
    return _round_half_up(common_count / len(my_interests) * 100)


def rank_candidates(my_interests: Sequence[str], candidates, limit: int = MAX_SUGGESTIONS):
    """Score candidates against ``my_interests``.

    ``candidates`` are objects with ``interests``. Returns a list of
    ``(candidate, common_interests, score)`` sorted by score descending,
    without candidates that share nothing, capped at ``limit``. Ties keep
    the order of ``candidates``.
    """
    mine = set(normalize_interests(my_interests))
    if not mine:
        return []
    ranked = []
    for candidate in candidates:
        common = [i for i in normalize_interests(candidate.interests) if i in mine]
        if not common:
            continue
        ranked.append((candidate, common, similarity_score(list(mine), len(common))))
    ranked.sort(key=lambda item: item[2], reverse=True)
    return ranked[:limit]
