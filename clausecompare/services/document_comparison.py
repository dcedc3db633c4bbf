"""
Clause-Level Document Comparison
Runs the clause matcher independently per category and assembles the report
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from clausecompare.config.config import Config
from clausecompare.services.clause_matcher import CategoryComparison, ClauseMatcher
from clausecompare.services.errors import InvalidClauseInputError
from clausecompare.services.taxonomy import Taxonomy, get_taxonomy

logger = logging.getLogger(__name__)

CategoryClauses = Dict[str, Sequence[str]]


@dataclass(frozen=True)
class ComparisonReport:
    """Per-category comparison of two documents, in taxonomy order"""
    doc_names: Tuple[str, str]
    taxonomy: str
    threshold: float
    categories: Tuple[Tuple[str, CategoryComparison], ...]
    risk_category: Optional[str] = None

    def category(self, key: str) -> CategoryComparison:
        for category_key, comparison in self.categories:
            if category_key == key:
                return comparison
        raise KeyError(key)

    def summary(self) -> Dict:
        by_category = {key: comparison.counts() for key, comparison in self.categories}
        totals = {'matched': 0, 'identical': 0, 'unique_to_a': 0, 'unique_to_b': 0}
        for counts in by_category.values():
            for name, value in counts.items():
                totals[name] += value
        return {'totals': totals, 'by_category': by_category}

    def to_dict(self) -> Dict:
        return {
            'doc_names': list(self.doc_names),
            'taxonomy': self.taxonomy,
            'threshold': self.threshold,
            'risk_category': self.risk_category,
            'categories': {key: comparison.to_dict() for key, comparison in self.categories}
        }


class ClauseComparator:
    """Compares two documents' categorized clauses under a fixed taxonomy"""

    def __init__(
        self,
        taxonomy: Taxonomy = None,
        threshold: float = Config.MATCH_THRESHOLD,
        identical_threshold: float = Config.IDENTICAL_THRESHOLD
    ):
        self.taxonomy = taxonomy or get_taxonomy(Config.DEFAULT_TAXONOMY)
        self.matcher = ClauseMatcher(threshold=threshold, identical_threshold=identical_threshold)

    def compare(
        self,
        categories_a: CategoryClauses,
        categories_b: CategoryClauses,
        doc_names: Sequence[str] = ("Document A", "Document B")
    ) -> ComparisonReport:
        """
        Compare two documents category by category

        Args:
            categories_a: Category key -> clause list for document A
            categories_b: Category key -> clause list for document B
            doc_names: Display names of A and B

        Returns:
            ComparisonReport with one CategoryComparison per taxonomy key
        """
        names = self._validate_doc_names(doc_names)
        self._validate_categories(categories_a, "categories_a")
        self._validate_categories(categories_b, "categories_b")

        logger.info(
            f"Comparing '{names[0]}' vs '{names[1]}' "
            f"(taxonomy={self.taxonomy.name}, threshold={self.matcher.threshold})"
        )

        results = []
        for key in self.taxonomy.categories:
            list_a = self._lookup(categories_a, key)
            list_b = self._lookup(categories_b, key)
            comparison = self.matcher.match(list_a, list_b)
            logger.debug(f"  {key}: {comparison.counts()}")
            results.append((key, comparison))

        return ComparisonReport(
            doc_names=names,
            taxonomy=self.taxonomy.name,
            threshold=self.matcher.threshold,
            categories=tuple(results),
            risk_category=self.taxonomy.risk_category
        )

    def _validate_categories(self, categories, label: str):
        if not isinstance(categories, Mapping):
            raise InvalidClauseInputError(
                f"Invalid input shape: {label} must be a mapping of category to clause list, "
                f"got {type(categories).__name__}"
            )
        unknown = [key for key in categories if key not in self.taxonomy.categories]
        if unknown:
            logger.warning(f"Ignoring categories not in taxonomy '{self.taxonomy.name}': {unknown}")

    @staticmethod
    def _lookup(categories: CategoryClauses, key: str) -> list:
        # Missing or null category means nothing was extracted for it
        clauses = categories.get(key)
        return [] if clauses is None else clauses

    @staticmethod
    def _validate_doc_names(doc_names) -> Tuple[str, str]:
        if (
            isinstance(doc_names, str)
            or not isinstance(doc_names, Sequence)
            or len(doc_names) != 2
            or not all(isinstance(name, str) for name in doc_names)
        ):
            raise InvalidClauseInputError("Invalid input shape: doc_names must be a pair of strings")
        return doc_names[0], doc_names[1]
