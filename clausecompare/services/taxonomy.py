"""
Clause Category Taxonomies
Fixed, closed sets of category keys shared by both documents in a comparison
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from clausecompare.services.errors import UnknownTaxonomyError


@dataclass(frozen=True)
class Taxonomy:
    """An ordered set of category keys plus display titles"""
    name: str
    categories: Tuple[str, ...]
    titles: Dict[str, str]
    risk_category: Optional[str] = None

    def title(self, category: str) -> str:
        return self.titles.get(category, category.replace("_", " "))

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'categories': list(self.categories),
            'titles': {key: self.title(key) for key in self.categories},
            'risk_category': self.risk_category
        }


UNIVERSAL = Taxonomy(
    name="universal",
    categories=("Obligations", "Rights", "Risks_Liabilities", "Term_Termination", "Levers"),
    titles={
        "Obligations": "Obligations",
        "Rights": "Rights",
        "Risks_Liabilities": "Risks / Liabilities",
        "Term_Termination": "Term & Termination",
        "Levers": "Negotiation Levers",
    },
    risk_category="Risks_Liabilities",
)

BENEFIT_LIABILITY_LEVER = Taxonomy(
    name="benefit_liability_lever",
    categories=("Benefits", "Liabilities", "Levers"),
    titles={
        "Benefits": "Benefits",
        "Liabilities": "Liabilities",
        "Levers": "Negotiation Levers",
    },
    risk_category="Liabilities",
)

TAXONOMIES: Dict[str, Taxonomy] = {
    UNIVERSAL.name: UNIVERSAL,
    BENEFIT_LIABILITY_LEVER.name: BENEFIT_LIABILITY_LEVER,
}


def get_taxonomy(name: str) -> Taxonomy:
    try:
        return TAXONOMIES[name]
    except KeyError:
        raise UnknownTaxonomyError(name) from None


def list_taxonomies() -> List[Dict]:
    return [taxonomy.to_dict() for taxonomy in TAXONOMIES.values()]
