# app/services/outcome_classifier.py
from __future__ import annotations

from statistics import mean
from typing import List, Optional

from app.config.logger import logger
from app.domain.identifiers import CandidateId
from app.domain.models import (
    AllocationResult, ApplicationRecord, FundingTier, Outcome, OutcomeKind, TierAllocation,
)
from app.services.admission_simulator import rank_key
from app.services.eligibility import is_eager


def _clears(score: float, result: AllocationResult) -> bool:
    """Проходит ли балл планку конкурса. Незаполненный конкурс с местами — проходит."""
    if result.available_seats <= 0:
        return False
    if result.cutoff_score is None:
        return True
    return score >= result.cutoff_score


def _ahead_of(record: ApplicationRecord, result: AllocationResult) -> int:
    key = rank_key(record)
    return sum(1 for r in result.ranked if rank_key(r) < key)


def _classify_program(
        target: CandidateId,
        result: AllocationResult,
        record: Optional[ApplicationRecord],
        known_score: float,
) -> Outcome:
    base = dict(program_id=result.program_id, cutoff_score=result.cutoff_score)

    if target in result.admitted:
        return Outcome(
            kind=OutcomeKind.ADMITTED,
            candidate_score=record.average_score if record else known_score,
            position=result.admitted.index(target) + 1,
            **base,
        )

    if record is None:
        return Outcome(
            kind=OutcomeKind.HYPOTHETICAL,
            candidate_score=known_score,
            predicted_admission=_clears(known_score, result),
            note="прогноз: заявки на этот конкурс нет",
            **base,
        )

    if not is_eager(record):
        return Outcome(
            kind=OutcomeKind.NOT_ADMITTED,
            candidate_score=record.average_score,
            note="нет ни оригинала документа, ни согласия",
            **base,
        )

    ahead = _ahead_of(record, result)
    if target in result.excluded:
        # к этому конкурсу абитуриент уже занял место на более популярном
        if _clears(record.average_score, result):
            return Outcome(
                kind=OutcomeKind.ADMITTED_BY_SCORE_NOT_PRIORITY,
                candidate_score=record.average_score,
                note="проходит по баллу, но место уже занято на более популярном конкурсе",
                **base,
            )
        return Outcome(
            kind=OutcomeKind.NOT_ADMITTED,
            candidate_score=record.average_score,
            ahead_count=ahead,
            queue_gap=max(ahead - len(result.admitted), 0),
            note="уже занял место на более популярном конкурсе",
            **base,
        )

    return Outcome(
        kind=OutcomeKind.NOT_ADMITTED,
        candidate_score=record.average_score,
        ahead_count=ahead,
        queue_gap=max(ahead - len(result.admitted), 0),
        **base,
    )


def classify(
        candidate_id: str,
        primary: TierAllocation,
        secondary: Optional[TierAllocation] = None,
) -> List[Outcome]:
    """
    Выводы по целевому абитуриенту: по одному на каждый конкурс каждого
    посчитанного уровня, в порядке популярности.

    Если абитуриента нет ни в одном списке — единственный INDETERMINATE.
    Платные выводы для уже зачисленного на бюджет помечаются informational:
    он входит в стартовые исключения платного уровня и зачислен там быть не может.
    """
    target = CandidateId(candidate_id)
    runs = [run for run in (primary, secondary) if run is not None]
    own = [r for run in runs for r in run.records if r.candidate_id == target]

    if not target or not own:
        logger.info("Абитуриент %s не найден ни в одном списке.", target or "<пусто>")
        return [Outcome(kind=OutcomeKind.INDETERMINATE, note="абитуриент не найден в списках")]

    known_score = float(mean(r.average_score for r in own))
    admitted_primary = primary is not None and any(
        target in res.admitted for res in primary.results.values()
    )

    outcomes: List[Outcome] = []
    for run in runs:
        informational = run.tier == FundingTier.SECONDARY and admitted_primary
        own_here = {r.program_id: r for r in own if r.program_id in run.results}
        for program_id in run.order:
            outcome = _classify_program(target, run.results[program_id], own_here.get(program_id), known_score)
            outcome.tier = run.tier
            outcome.informational = informational
            outcomes.append(outcome)

    logger.info(
        "Выводы для %s: %s",
        target,
        ", ".join(f"{k.value}={sum(o.kind == k for o in outcomes)}"
                  for k in OutcomeKind if any(o.kind == k for o in outcomes)),
    )
    return outcomes
