# app/services/admission_simulator.py
from __future__ import annotations

from collections import defaultdict
from typing import AbstractSet, Dict, Iterable, List, Mapping, Sequence, Set

from app.config.logger import logger
from app.domain.identifiers import CandidateId
from app.domain.models import AllocationResult, ApplicationRecord, ProgramInfo
from app.services.eligibility import is_eager


def rank_key(record: ApplicationRecord):
    """
    Порядок внутри конкурса:
      • балл по убыванию;
      • при равенстве — приоритет по возрастанию (1 сильнее 2);
      • далее — нормализованный СНИЛС по возрастанию.
    """
    return -record.average_score, record.priority_rank, record.candidate_id


def rank_candidates(records: Iterable[ApplicationRecord]) -> List[ApplicationRecord]:
    return sorted(records, key=rank_key)


def group_by_program(records: Iterable[ApplicationRecord]) -> Dict[str, List[ApplicationRecord]]:
    """program_id -> заявки в исходном порядке."""
    grouped: Dict[str, List[ApplicationRecord]] = defaultdict(list)
    for r in records:
        grouped[r.program_id].append(r)
    return dict(grouped)


class SequentialAdmissionSimulator:
    """
    Последовательное распределение мест внутри одного уровня финансирования.

    Конкурсы обрабатываются строго по порядку популярности (самый востребованный
    первым). Зачисленный на конкурс абитуриент сразу попадает в множество
    исключений и больше не рассматривается ни на одном следующем конкурсе.
    Это эвристика «кто прошёл выше — ушёл из пула», а не устойчивое паросочетание:
    порядок обработки задаёт популярность, а не личные приоритеты.

    Множество исключений живёт только внутри одного вызова allocate().
    """

    def __init__(self, programs: Mapping[str, ProgramInfo]):
        self._programs = programs

    def allocate(
            self,
            ordered_programs: Sequence[str],
            records_by_program: Mapping[str, Sequence[ApplicationRecord]],
            exclusion_seed: AbstractSet[CandidateId] = frozenset(),
    ) -> Dict[str, AllocationResult]:
        # копия: мутации в этом прогоне не видны владельцу seed
        excluded: Set[CandidateId] = {CandidateId(cid) for cid in exclusion_seed}
        logger.debug("Распределение: %d конкурсов, исключено заранее %d", len(ordered_programs), len(excluded))

        results: Dict[str, AllocationResult] = {}
        for program_id in ordered_programs:
            seats = max(int(self._programs[program_id].available_seats), 0)
            eager = [r for r in records_by_program.get(program_id, ()) if is_eager(r)]

            considered = [r for r in eager if r.candidate_id not in excluded]
            skipped = [r.candidate_id for r in eager if r.candidate_id in excluded]
            ranked = rank_candidates(considered)

            admitted_records = ranked[:min(seats, len(ranked))]
            admitted = [r.candidate_id for r in admitted_records]

            cutoff = None
            if seats > 0 and len(admitted) == seats:
                cutoff = admitted_records[-1].average_score

            # следующий конкурс стартует только после фиксации этих зачислений
            excluded.update(admitted)

            results[program_id] = AllocationResult(
                program_id=program_id,
                available_seats=seats,
                admitted=admitted,
                cutoff_score=cutoff,
                ranked=ranked,
                excluded=skipped,
            )
            logger.debug(
                "   %s: мест %d, рассмотрено %d, исключено %d, зачислено %d, проходной %s",
                program_id, seats, len(ranked), len(skipped), len(admitted),
                "—" if cutoff is None else f"{cutoff:.3f}",
            )

        return results
