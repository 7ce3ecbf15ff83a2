"""
Working-Set Classifier

"Three to grow, one to know": the first three working sets drive
progression, anything after is a diagnostic set.
"""

from typing import List, NamedTuple, Sequence

from ..models import SetRecord

GROWTH_SET_COUNT = 3


class ClassifiedSets(NamedTuple):
    growth: List[SetRecord]
    diagnostic: List[SetRecord]

    @property
    def all(self) -> List[SetRecord]:
        return self.growth + self.diagnostic


def classify_working_sets(records: Sequence[SetRecord]) -> ClassifiedSets:
    """Split working sets into (growth, diagnostic), preserving order."""
    records = list(records)
    return ClassifiedSets(
        growth=records[:GROWTH_SET_COUNT],
        diagnostic=records[GROWTH_SET_COUNT:],
    )
