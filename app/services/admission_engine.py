# app/services/admission_engine.py
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.config.logger import logger
from app.domain.errors import MissingProgramInfoError, TierDependencyError
from app.domain.identifiers import CandidateId
from app.domain.models import (
    AdmissionReport, ApplicationRecord, FundingTier, ProgramInfo, TierAllocation,
)
from app.services.admission_simulator import SequentialAdmissionSimulator, group_by_program
from app.services.funding_tiers import partition, programs_of_tier, seed_exclusions
from app.services.outcome_classifier import classify
from app.services.popularity import compute_popularity


class AdmissionEngine:
    """
    Полный прогон: бюджет → платное → выводы по целевому абитуриенту.

    Уровни считаются строго последовательно; платный получает в качестве
    стартовых исключений всех зачисленных на бюджет (копией, не ссылкой).
    """

    def __init__(self, programs: Iterable[ProgramInfo]):
        self._programs: Dict[str, ProgramInfo] = {p.program_id: p for p in programs}
        self._simulator = SequentialAdmissionSimulator(self._programs)

    @property
    def programs(self) -> Dict[str, ProgramInfo]:
        return self._programs

    def _check_programs(self, records: Sequence[ApplicationRecord]) -> None:
        unknown = {r.program_id for r in records if r.program_id not in self._programs}
        if unknown:
            raise MissingProgramInfoError(unknown)

    @staticmethod
    def _drop_malformed(records: Sequence[ApplicationRecord]) -> Tuple[List[ApplicationRecord], int]:
        """Пустой СНИЛС, отрицательный или нечисловой балл: заявка в распределение не идёт."""
        valid = [
            r for r in records
            if r.candidate_id and math.isfinite(r.average_score) and r.average_score >= 0
        ]
        dropped = len(records) - len(valid)
        if dropped:
            logger.warning("Пропущено битых заявок на входе распределения: %d", dropped)
        return valid, dropped

    def run_tier(
            self,
            tier: FundingTier,
            records: Sequence[ApplicationRecord],
            primary: Optional[TierAllocation] = None,
    ) -> TierAllocation:
        if tier == FundingTier.SECONDARY and primary is None:
            raise TierDependencyError(
                "Платный уровень не считается без завершённого бюджетного: нет стартовых исключений"
            )
        records, _ = self._drop_malformed(records)
        self._check_programs(records)

        tier_records = partition(records, self._programs, tier)
        tier_programs = programs_of_tier(self._programs, tier)
        seed = seed_exclusions(primary.results) if tier == FundingTier.SECONDARY else frozenset()

        logger.info(
            "→ Уровень %s: %d конкурсов, %d заявок, стартовых исключений %d",
            tier.value, len(tier_programs), len(tier_records), len(seed),
        )
        popularity = compute_popularity(tier_records, tier_programs)
        results = self._simulator.allocate(
            [p.program_id for p in popularity],
            group_by_program(tier_records),
            seed,
        )

        filled = sum(1 for r in results.values() if r.is_filled)
        admitted = sum(len(r.admitted) for r in results.values())
        logger.info("   уровень %s: зачислено %d, заполнено конкурсов %d/%d",
                    tier.value, admitted, filled, len(results))
        return TierAllocation(tier=tier, popularity=popularity, results=results, records=tier_records)

    def run(
            self,
            records: Sequence[ApplicationRecord],
            target: str,
            tiers: Iterable = (FundingTier.PRIMARY,),
            skipped_records: int = 0,
    ) -> AdmissionReport:
        wanted: List[FundingTier] = FundingTier.ordered(tiers)
        if FundingTier.SECONDARY in wanted and FundingTier.PRIMARY not in wanted:
            raise TierDependencyError("Платный уровень запрошен без бюджетного")

        target_id = CandidateId(target)
        records, dropped = self._drop_malformed(records)
        self._check_programs(records)

        runs: Dict[FundingTier, TierAllocation] = {}
        for tier in wanted:
            runs[tier] = self.run_tier(tier, records, primary=runs.get(FundingTier.PRIMARY))

        outcomes = classify(
            target_id,
            runs[FundingTier.PRIMARY],
            runs.get(FundingTier.SECONDARY),
        ) if runs else []

        return AdmissionReport(
            target=target_id,
            tiers=runs,
            outcomes=outcomes,
            skipped_records=skipped_records + dropped,
        )
