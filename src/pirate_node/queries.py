"""Request builders for the two torrent search shapes.

Both builders are pure: they copy the caller's options, add the fixed index
and type (which win over caller keys) and return a request mapping that
``ClusterClient.search`` understands (``index``, ``type``, optional ``body``,
everything else sent as URL parameters).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .identity import DOCUMENT_TYPE, INDEX_NAME


def _require_query(query: str) -> str:
    if not isinstance(query, str) or not query.strip():
        raise ValueError("Search query cannot be empty")
    return query


def _base_request(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    request = dict(options or {})
    request["index"] = INDEX_NAME
    request["type"] = DOCUMENT_TYPE
    return request


@dataclass(frozen=True)
class ScoredSearchPolicy:
    """Scoring used by the full search.

    The text score comes from a query-string query over the boosted fields
    (best field wins). It is multiplied by ``ln(2 + factor * seeders)``,
    capped at ``max_boost``. Hits below ``min_score`` are dropped.
    """

    fields: Tuple[Tuple[str, float], ...] = (("title", 4.0), ("nfo", 1.0))
    seeders_field: str = "seeders"
    modifier: str = "ln2p"
    factor: float = 0.5
    boost_mode: str = "multiply"
    max_boost: float = 2.5
    min_score: float = 0.5

    def field_specs(self) -> list:
        return [name if boost == 1.0 else f"{name}^{boost:g}" for name, boost in self.fields]

    def body(self, query: str) -> Dict[str, Any]:
        return {
            "min_score": self.min_score,
            "query": {
                "function_score": {
                    "query": {
                        "query_string": {
                            "fields": self.field_specs(),
                            "query": query,
                        },
                    },
                    "field_value_factor": {
                        "field": self.seeders_field,
                        "modifier": self.modifier,
                        "factor": self.factor,
                    },
                    "boost_mode": self.boost_mode,
                    "max_boost": self.max_boost,
                },
            },
        }

    def seeders_boost(self, seeders: int) -> float:
        """Multiplier applied for a given seeder count."""
        return min(math.log(2 + self.factor * max(seeders, 0)), self.max_boost)

    def score(self, field_scores: Mapping[str, float], seeders: int) -> float:
        """Model of the final score for one document.

        Args:
            field_scores: Raw text-match score per field (before boosts).
            seeders: Document's seeder count.
        """
        text_score = max(
            (field_scores.get(name, 0.0) * boost for name, boost in self.fields),
            default=0.0,
        )
        return text_score * self.seeders_boost(seeders)

    def accepts(self, score: float) -> bool:
        return score >= self.min_score


DEFAULT_SCORED_POLICY = ScoredSearchPolicy()


def build_search_request(query: str, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Plain query-string search; ranking is the engine's default.

    Raises:
        ValueError: If the query is empty.
    """
    request = _base_request(options)
    request["q"] = _require_query(query)
    return request


def build_full_search_request(
    query: str,
    options: Optional[Mapping[str, Any]] = None,
    policy: ScoredSearchPolicy = DEFAULT_SCORED_POLICY,
) -> Dict[str, Any]:
    """Seeder-weighted function-score search over title and nfo.

    Raises:
        ValueError: If the query is empty.
    """
    request = _base_request(options)
    request["body"] = policy.body(_require_query(query))
    return request
