"""
Mesocycle Phase Mapping

Maps an absolute week number to a meso phase and derives the effective
target RIR for that phase.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..exceptions import ConfigError
from ..models import MesoPhase


@dataclass(frozen=True)
class PhaseRange:
    """Inclusive week range; last_week=None means open-ended."""
    first_week: int
    last_week: Optional[int]
    phase: MesoPhase

    def contains(self, week: int) -> bool:
        if week < self.first_week:
            return False
        return self.last_week is None or week <= self.last_week


class MesoBlock:
    """
    A block definition: ordered week ranges, each mapped to a phase.

    Reference block (11 weeks: 10 working + 1 deload):
    - Weeks 1-3: Early accumulation (higher reps, 2-3 RIR)
    - Weeks 4-6: Mid meso (steady progression, 1-2 RIR)
    - Weeks 7-10: Late / peak (heavier, 0-1 RIR)
    - Week 11+: Deload
    """

    def __init__(self, ranges: Sequence[PhaseRange]):
        if not ranges:
            raise ConfigError("A meso block needs at least one phase range")
        self.ranges: Tuple[PhaseRange, ...] = tuple(sorted(ranges, key=lambda r: r.first_week))
        self._validate()

    def _validate(self):
        previous_last = None
        for r in self.ranges:
            if r.last_week is not None and r.last_week < r.first_week:
                raise ConfigError(f"Week range {r.first_week}-{r.last_week} is inverted")
            if previous_last is not None and r.first_week <= previous_last:
                raise ConfigError(f"Week range starting at {r.first_week} overlaps the previous range")
            previous_last = r.last_week if r.last_week is not None else float('inf')

    @classmethod
    def reference(cls) -> 'MesoBlock':
        return cls([
            PhaseRange(1, 3, MesoPhase.EARLY),
            PhaseRange(4, 6, MesoPhase.MID),
            PhaseRange(7, 10, MesoPhase.LATE),
            PhaseRange(11, None, MesoPhase.DELOAD),
        ])

    @classmethod
    def from_rows(cls, rows: Iterable[dict]) -> 'MesoBlock':
        """Build from YAML rows like {weeks: [1, 3], phase: early}."""
        ranges: List[PhaseRange] = []
        for row in rows:
            try:
                weeks = row['weeks']
                first = int(weeks[0])
                last = int(weeks[1]) if len(weeks) > 1 and weeks[1] is not None else None
                phase = MesoPhase(str(row['phase']).lower())
            except (KeyError, IndexError, TypeError, ValueError) as e:
                raise ConfigError(f"Invalid meso block row {row!r}: {e}") from e
            ranges.append(PhaseRange(first, last, phase))
        return cls(ranges)

    @property
    def total_weeks(self) -> Optional[int]:
        """Length of the bounded part of the block (None if nothing is bounded)."""
        bounded = [r.last_week for r in self.ranges if r.last_week is not None]
        return max(bounded) if bounded else None

    def phase(self, week: int) -> MesoPhase:
        """Phase for a 1-based week. Weeks before the block map to its first phase."""
        if week < self.ranges[0].first_week:
            return self.ranges[0].phase
        for r in self.ranges:
            if r.contains(week):
                return r.phase
        # Gap in the table or past the last bounded range: stay in the latest phase reached.
        reached = [r for r in self.ranges if r.first_week <= week]
        return reached[-1].phase


def effective_target_rir(phase: MesoPhase, base_rir: float) -> float:
    """Target RIR for a phase, derived from the early-phase base."""
    if phase == MesoPhase.EARLY:
        return base_rir
    if phase == MesoPhase.MID:
        return max(1.5, base_rir - 0.3)
    if phase == MesoPhase.LATE:
        return max(1.0, base_rir - 1.0)
    # Deload: informational only, the engine short-circuits before RIR rules
    return base_rir + 1.0
