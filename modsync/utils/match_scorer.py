"""Score catalog search hits against filename-derived queries."""
from typing import Iterable, List, Optional

from modsync.models import CatalogHit
from modsync.utils.query_generator import normalize_key, compact_key

SINGLE_TOKEN_THRESHOLD = 90
MULTI_TOKEN_THRESHOLD = 62

MIN_TOKEN_LENGTH = 2
MIN_SUBSTRING_TOKEN_LENGTH = 5


class MatchResult:
    """Winning hit together with the score and the query that produced it"""

    def __init__(self, hit: CatalogHit, score: int, query: str):
        self.hit = hit
        self.score = score
        self.query = query

    def __repr__(self):
        return f"MatchResult({self.hit!r}, score={self.score}, query={self.query!r})"


def query_tokens(query: str) -> List[str]:
    return [t for t in query.split("-") if len(t) >= MIN_TOKEN_LENGTH]


def acceptance_threshold(query: str) -> int:
    return SINGLE_TOKEN_THRESHOLD if len(query_tokens(query)) <= 1 else MULTI_TOKEN_THRESHOLD


def score_hit(query: str, hit: CatalogHit) -> int:
    """Confidence (0-100) that ``hit`` is the project named by ``query``"""
    slug = normalize_key(hit.slug or "")
    title = normalize_key(hit.title or "")
    if not slug and not title:
        return 0

    compact_query = compact_key(query)
    if slug == query:
        return 100
    if title == query:
        return 95
    if slug and compact_key(slug) == compact_query:
        return 92
    if title and compact_key(title) == compact_query:
        return 90
    if slug.startswith(f"{query}-"):
        return 84
    if title.startswith(f"{query}-"):
        return 80

    tokens = query_tokens(query)
    if len(tokens) >= 2:
        in_slug = sum(1 for t in tokens if t in slug)
        in_title = sum(1 for t in tokens if t in title)
        coverage = max(in_slug, in_title) / len(tokens)
        if coverage >= 1:
            return 74
        if coverage >= 0.75:
            return 62

    if len(tokens) == 1 and len(tokens[0]) >= MIN_SUBSTRING_TOKEN_LENGTH:
        if tokens[0] in slug or tokens[0] in title:
            return 45

    return 0


def select_best_match(queries: Iterable[str], hits: Iterable[CatalogHit]) -> Optional[MatchResult]:
    """Best (query, hit) pair over all combinations, or None below the bar.

    Ties keep the earliest pair, so the result depends only on input order.
    """
    hits = list(hits)
    best = None
    for query in queries:
        for hit in hits:
            score = score_hit(query, hit)
            if score > 0 and (best is None or score > best.score):
                best = MatchResult(hit, score, query)

    if best is None:
        return None
    if best.score < acceptance_threshold(best.query):
        return None
    return best
