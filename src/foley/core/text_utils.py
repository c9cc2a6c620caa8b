"""Keyword helpers shared by the engine and the asset library backends."""

from __future__ import annotations

from collections.abc import Sequence

MIN_TERM_LENGTH = 3


def search_terms(keywords: Sequence[str]) -> list[str]:
    """Lower-case keywords of at least three characters, deduplicated in order.

    Each entry may hold several words; they are split on whitespace.
    """
    terms: list[str] = []
    for keyword in keywords:
        for word in keyword.lower().split():
            if len(word) >= MIN_TERM_LENGTH and word not in terms:
                terms.append(word)
    return terms
