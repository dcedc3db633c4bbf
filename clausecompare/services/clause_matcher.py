"""
Clause Matcher
Greedy best-match pairing of two clause lists into matched / unique buckets
"""
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Dict, List, Sequence, Tuple

from clausecompare.config.config import Config
from clausecompare.services.errors import InvalidClauseInputError
from clausecompare.services.similarity import score


class Owner(Enum):
    """Which document a unique clause came from"""
    A = "A"
    B = "B"


@dataclass(frozen=True)
class MatchedPair:
    text_a: str
    text_b: str
    similarity: float
    identical: bool = False

    def to_dict(self) -> Dict:
        return {
            'text_a': self.text_a,
            'text_b': self.text_b,
            'similarity': round(self.similarity, 4),
            'identical': self.identical
        }


@dataclass(frozen=True)
class UniqueClause:
    text: str
    owner: Owner

    def to_dict(self) -> Dict:
        return {'text': self.text, 'owner': self.owner.value}


@dataclass(frozen=True)
class CategoryComparison:
    matched: Tuple[MatchedPair, ...] = field(default_factory=tuple)
    unique_to_a: Tuple[UniqueClause, ...] = field(default_factory=tuple)
    unique_to_b: Tuple[UniqueClause, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not (self.matched or self.unique_to_a or self.unique_to_b)

    def counts(self) -> Dict[str, int]:
        return {
            'matched': len(self.matched),
            'identical': sum(1 for pair in self.matched if pair.identical),
            'unique_to_a': len(self.unique_to_a),
            'unique_to_b': len(self.unique_to_b)
        }

    def to_dict(self) -> Dict:
        return {
            'matched': [pair.to_dict() for pair in self.matched],
            'unique_to_a': [clause.to_dict() for clause in self.unique_to_a],
            'unique_to_b': [clause.to_dict() for clause in self.unique_to_b]
        }


def validate_threshold(threshold, name: str = "threshold") -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise InvalidClauseInputError(f"Invalid input shape: {name} must be a number")
    if not 0.0 <= threshold <= 1.0:
        raise InvalidClauseInputError(f"{name} must be between 0 and 1, got {threshold}")
    return float(threshold)


def validate_clause_list(clauses, label: str = "clause list") -> List[str]:
    """Reject anything that is not a list/tuple of strings"""
    if not isinstance(clauses, (list, tuple)):
        raise InvalidClauseInputError(
            f"Invalid input shape: {label} must be a list of strings, got {type(clauses).__name__}"
        )
    for idx, clause in enumerate(clauses):
        if not isinstance(clause, str):
            raise InvalidClauseInputError(
                f"Invalid input shape: {label}[{idx}] must be a string, got {type(clause).__name__}"
            )
    return list(clauses)


class ClauseMatcher:
    """
    Pairs clauses of document A with clauses of document B

    Walks A in order and takes the best still-available B clause for each one.
    A pair is made only when the best score is strictly above the threshold.
    A B clause is consumed by the first A clause that claims it, and on equal
    scores the earliest B clause wins. The pairing is greedy, so it can miss a
    better global assignment when A's order is unlucky.
    """

    def __init__(
        self,
        threshold: float = Config.MATCH_THRESHOLD,
        identical_threshold: float = Config.IDENTICAL_THRESHOLD
    ):
        self.threshold = validate_threshold(threshold)
        self.identical_threshold = validate_threshold(identical_threshold, "identical_threshold")

    def match(self, list_a: Sequence[str], list_b: Sequence[str]) -> CategoryComparison:
        clauses_a = validate_clause_list(list_a, "list_a")
        available = validate_clause_list(list_b, "list_b")

        matched = []
        unique_to_a = []

        for text_a in clauses_a:
            best_index = -1
            best_similarity = -1.0

            for idx, text_b in enumerate(available):
                similarity = score(text_a, text_b)
                if similarity > best_similarity:
                    best_similarity = similarity
                    best_index = idx

            if best_index >= 0 and best_similarity > self.threshold:
                text_b = available.pop(best_index)
                matched.append(MatchedPair(
                    text_a=text_a,
                    text_b=text_b,
                    similarity=best_similarity,
                    identical=best_similarity >= self.identical_threshold
                ))
            else:
                unique_to_a.append(UniqueClause(text=text_a, owner=Owner.A))

        unique_to_b = [UniqueClause(text=text_b, owner=Owner.B) for text_b in available]

        return CategoryComparison(
            matched=tuple(matched),
            unique_to_a=tuple(unique_to_a),
            unique_to_b=tuple(unique_to_b)
        )


def match_clauses(
    list_a: Sequence[str],
    list_b: Sequence[str],
    threshold: float = Config.MATCH_THRESHOLD
) -> CategoryComparison:
    """Match two clause lists with the given similarity threshold"""
    return ClauseMatcher(threshold=threshold).match(list_a, list_b)
