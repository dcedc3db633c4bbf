"""
Clause Similarity Scoring
Dice coefficient over character bigrams, counted as a multiset
"""
import re
from collections import Counter

from clausecompare.services.errors import InvalidClauseInputError

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Collapse whitespace runs to a single space and lowercase"""
    if not isinstance(text, str):
        raise InvalidClauseInputError(
            f"Invalid input shape: clause text must be a string, got {type(text).__name__}"
        )
    return _WHITESPACE.sub(" ", text).lower()


def bigram_counts(text: str) -> Counter:
    """Count every overlapping 2-character substring, spaces included"""
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def score(a: str, b: str) -> float:
    """
    Similarity of two clause texts in [0, 1]

    Repeated bigrams are counted, so "aaaa" vs "aa" is not a perfect match.

    Args:
        a: First clause text
        b: Second clause text

    Returns:
        2 * |bigrams(a) ∩ bigrams(b)| / (|bigrams(a)| + |bigrams(b)|)
    """
    norm_a = normalize(a)
    norm_b = normalize(b)

    # Fewer than 2 chars means no bigrams at all
    if len(norm_a) < 2 or len(norm_b) < 2:
        return 0.0
    if norm_a == norm_b:
        return 1.0

    counts_a = bigram_counts(norm_a)
    counts_b = bigram_counts(norm_b)
    matched = sum((counts_a & counts_b).values())

    return 2.0 * matched / ((len(norm_a) - 1) + (len(norm_b) - 1))
