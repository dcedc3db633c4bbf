"""
Favorability Verdict
Turns unique-clause counts into a one-line, non-authoritative summary
"""
from dataclasses import dataclass
from typing import Dict, Optional

from clausecompare.config.config import Config
from clausecompare.services.clause_matcher import Owner
from clausecompare.services.document_comparison import ComparisonReport

DISCLAIMER = (
    "This is an automated comparison based on clause counts and is not legal advice. "
    "Consult a qualified professional."
)


@dataclass(frozen=True)
class Verdict:
    advantage_a: int
    advantage_b: int
    favored: Optional[Owner]
    margin: int
    message: str
    disclaimer: str = DISCLAIMER

    def to_dict(self) -> Dict:
        return {
            'advantage_a': self.advantage_a,
            'advantage_b': self.advantage_b,
            'favored': self.favored.value if self.favored else None,
            'margin': self.margin,
            'message': self.message,
            'disclaimer': self.disclaimer
        }


class FavorabilityHeuristic:
    """
    Counts a clause unique to one side as an advantage for that side.

    In the report's risk category the polarity is inverted: a liability only
    document A carries is a point for document B.
    """

    def __init__(self, balance_margin: int = Config.VERDICT_BALANCE_MARGIN):
        self.balance_margin = balance_margin

    def score(self, report: ComparisonReport) -> Dict[Owner, int]:
        advantage = {Owner.A: 0, Owner.B: 0}
        for key, comparison in report.categories:
            if key == report.risk_category:
                advantage[Owner.B] += len(comparison.unique_to_a)
                advantage[Owner.A] += len(comparison.unique_to_b)
            else:
                advantage[Owner.A] += len(comparison.unique_to_a)
                advantage[Owner.B] += len(comparison.unique_to_b)
        return advantage

    def evaluate(self, report: ComparisonReport) -> Verdict:
        advantage = self.score(report)
        advantage_a, advantage_b = advantage[Owner.A], advantage[Owner.B]
        margin = abs(advantage_a - advantage_b)

        if margin <= self.balance_margin:
            return Verdict(
                advantage_a=advantage_a,
                advantage_b=advantage_b,
                favored=None,
                margin=margin,
                message=(
                    f"'{report.doc_names[0]}' and '{report.doc_names[1]}' appear broadly balanced "
                    f"({advantage_a} vs {advantage_b} favorable points)."
                )
            )

        favored = Owner.A if advantage_a > advantage_b else Owner.B
        name = report.doc_names[0] if favored is Owner.A else report.doc_names[1]
        return Verdict(
            advantage_a=advantage_a,
            advantage_b=advantage_b,
            favored=favored,
            margin=margin,
            message=(
                f"Document {favored.value} ('{name}') appears more favorable "
                f"by a margin of {margin} point{'s' if margin != 1 else ''}."
            )
        )


def verdict(report: ComparisonReport, balance_margin: int = Config.VERDICT_BALANCE_MARGIN) -> str:
    return FavorabilityHeuristic(balance_margin).evaluate(report).message
