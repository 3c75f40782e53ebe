from typing import FrozenSet, Iterable, List, Mapping

from app.domain.identifiers import CandidateId
from app.domain.models import AllocationResult, ApplicationRecord, FundingTier, ProgramInfo


def partition(
        records: Iterable[ApplicationRecord],
        programs: Mapping[str, ProgramInfo],
        tier: FundingTier,
) -> List[ApplicationRecord]:
    """Заявки, чей конкурс относится к заданному уровню финансирования."""
    return [
        r for r in records
        if r.program_id in programs and programs[r.program_id].funding_tier == tier
    ]


def programs_of_tier(programs: Mapping[str, ProgramInfo], tier: FundingTier) -> List[ProgramInfo]:
    return [p for p in programs.values() if p.funding_tier == tier]


def seed_exclusions(primary_results: Mapping[str, AllocationResult]) -> FrozenSet[CandidateId]:
    """
    Все зачисленные на бюджет — стартовое множество исключений платного уровня.
    Возвращается неизменяемое значение: симулятор платного уровня работает с копией.
    """
    return frozenset(
        CandidateId(cid)
        for result in primary_results.values()
        for cid in result.admitted
    )
