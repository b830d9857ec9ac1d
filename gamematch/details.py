"""
Synopsis and genre matching.

First-success cascade: the display title (parent releases only), the
simplified title, then hand-curated aliases. The first query that returns
any record wins; its summary is translated (falling back to the source
text) and its genres are mapped to the catalog vocabulary.
"""

import time
from typing import Callable, Optional

from .config import MatchSettings
from .genres import map_genres
from .logger import get_logger
from .schema import Candidate, DetailMatch
from .search import build_detail_query
from .variants import detail_query_plan

logger = get_logger()


class DetailMatcher:
    def __init__(
        self,
        search_client,
        translator=None,
        settings: Optional[MatchSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.search_client = search_client
        self.translator = translator
        self.settings = settings or MatchSettings()
        self.sleep = sleep

    def match(self, title: str) -> Optional[DetailMatch]:
        found = self._first_hit(title)
        if found is None:
            return None
        candidate, term = found

        external = list(candidate.genres)
        return DetailMatch(
            name=candidate.name,
            description=self._translate(candidate.summary),
            genres=map_genres(external, self.settings.genre_map),
            external_genres=external,
            query=term,
        )

    def _first_hit(self, title: str) -> Optional[tuple[Candidate, str]]:
        plan = detail_query_plan(title, self.settings.title_aliases)
        for i, (term, exclude_versions) in enumerate(plan):
            candidates = self.search_client.search(build_detail_query(term, exclude_versions))
            if candidates:
                logger.debug("Detail match", title=title, query=term, match=candidates[0].name)
                return candidates[0], term
            # courtesy delay between misses, none after the last attempt
            if i < len(plan) - 1:
                self.sleep(self.settings.query_delay)
        return None

    def _translate(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        if self.translator is None:
            return text
        try:
            translated = self.translator.translate(text)
        except Exception as e:
            logger.warning("Translation failed, keeping source text", error=str(e))
            return text
        return translated or text
