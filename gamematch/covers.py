"""
Cover art matching.

Best-of-N cascade over title variants: every candidate must first contain
all distinctive tokens of the local title (hard gate), then survivors are
ranked by Jaccard similarity. A high-confidence hit ends the cascade early;
otherwise the best survivor wins if it clears the minimum score.
"""

from typing import Callable, Dict, Optional, Set, Tuple

from .config import MatchSettings
from .logger import get_logger
from .normalize import distinctive_tokens, normalize_text, title_tokens, token_set
from .schema import Candidate, CoverMatch
from .scoring import covers_all, jaccard
from .search import build_cover_query
from .variants import generate_variants

logger = get_logger()

IGDB_IMG_BASE = "https://images.igdb.com/igdb/image/upload/"

Scorer = Callable[[Set[str], Set[str]], float]


def cover_size(size2x: bool) -> str:
    return "t_cover_big_2x" if size2x else "t_cover_big"


def cover_url_from_image_id(image_id: str, size2x: bool = True) -> str:
    return f"{IGDB_IMG_BASE}{cover_size(size2x)}/{image_id}.jpg"


class CoverMatcher:
    def __init__(self, search_client, settings: Optional[MatchSettings] = None, scorer: Scorer = jaccard):
        self.search_client = search_client
        self.settings = settings or MatchSettings()
        self.scorer = scorer

    def match(
        self,
        title: str,
        overrides: Optional[Dict[str, str]] = None,
        size2x: bool = True,
    ) -> Optional[CoverMatch]:
        """Resolve a cover for one title, or None when nothing is trustworthy."""
        override = (overrides or {}).get(normalize_text(title))
        if override:
            logger.debug("Cover override hit", title=title)
            return CoverMatch(url=override, source="override")

        source_tokens = set(title_tokens(title, self.settings.stopwords))
        required = distinctive_tokens(source_tokens)

        best = self._best_candidate(title, source_tokens, required)
        if best is None:
            return None
        score, candidate = best
        if score < self.settings.min_score:
            logger.debug("Best cover candidate below threshold", title=title,
                         candidate=candidate.name, score=round(score, 3))
            return None

        return CoverMatch(
            url=cover_url_from_image_id(candidate.image_id, size2x),
            source="search",
            name=candidate.name,
            image_id=candidate.image_id,
            score=score,
        )

    def _best_candidate(
        self,
        title: str,
        source_tokens: Set[str],
        required: Set[str],
    ) -> Optional[Tuple[float, Candidate]]:
        best: Optional[Tuple[float, Candidate]] = None
        for variant in generate_variants(title):
            query = build_cover_query(variant, self.settings.search_limit)
            for candidate in self.search_client.search(query):
                score = self._score(candidate, source_tokens, required)
                if score is None:
                    continue
                if score >= self.settings.early_exit_score:
                    logger.debug("High-confidence cover match", title=title, variant=variant,
                                 candidate=candidate.name, score=round(score, 3))
                    return score, candidate
                # ties keep the earlier candidate
                if best is None or score > best[0]:
                    best = (score, candidate)
        return best

    def _score(self, candidate: Candidate, source_tokens: Set[str], required: Set[str]) -> Optional[float]:
        """Jaccard score for a gated candidate, None if it is rejected."""
        if not candidate.image_id:
            return None
        candidate_tokens = token_set(candidate.names, self.settings.stopwords)
        if not covers_all(candidate_tokens, required):
            logger.debug("Candidate rejected by distinctive tokens", candidate=candidate.name,
                         missing=sorted(required - candidate_tokens))
            return None
        return self.scorer(source_tokens, candidate_tokens)
