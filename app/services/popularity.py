# app/services/popularity.py
from __future__ import annotations

from typing import Iterable, List, Sequence

import pandas as pd

from app.config.logger import logger
from app.domain.models import ApplicationRecord, ProgramInfo, ProgramPopularity
from app.services.eligibility import is_eager

_COLUMNS = ["program_id", "average_score", "eager"]


def _records_frame(records: Iterable[ApplicationRecord]) -> pd.DataFrame:
    rows = [(r.program_id, float(r.average_score), is_eager(r)) for r in records]
    frame = pd.DataFrame(rows, columns=_COLUMNS)
    # пустой список заявок иначе даёт object-колонки
    return frame.astype({"program_id": str, "average_score": float, "eager": bool})


def _sort_key(p: ProgramPopularity):
    # конкурсы без заявок — в самый конец; последний ключ нужен для детерминизма
    return (
        p.total_applications == 0,
        -p.applications_per_seat,
        -p.top_cohort_average,
        p.program_id,
    )


def compute_popularity(
        records: Iterable[ApplicationRecord],
        programs: Sequence[ProgramInfo],
) -> List[ProgramPopularity]:
    """
    Считает конкурентность каждого конкурса и возвращает их
    от самого востребованного к наименее.

    • заявок на место — по ВСЕМ заявкам (и активным, и нет);
    • средний балл «верхней когорты» — лучшие available_seats активных
      (или все активные, если их меньше);
    • при равенстве — program_id по возрастанию.
    """
    frame = _records_frame(records)
    totals = frame.groupby("program_id").size()
    eager = frame[frame["eager"]]

    stats: List[ProgramPopularity] = []
    for info in programs:
        total = int(totals.get(info.program_id, 0))
        scores = eager.loc[eager["program_id"] == info.program_id, "average_score"]

        seats = max(int(info.available_seats), 0)
        cohort = scores.nlargest(seats) if seats > 0 else scores.iloc[0:0]
        cohort_avg = float(cohort.mean()) if len(cohort) else 0.0
        ratio = total / seats if seats > 0 else 0.0

        stats.append(ProgramPopularity(
            program_id=info.program_id,
            total_applications=total,
            eager_applications=int(scores.size),
            available_seats=seats,
            applications_per_seat=ratio,
            top_cohort_average=cohort_avg,
        ))

    stats.sort(key=_sort_key)
    for i, p in enumerate(stats, start=1):
        logger.debug(
            "   %d. %s: %.2f заявок/место, средний балл когорты %.3f (заявок %d, активных %d, мест %d)",
            i, p.program_id, p.applications_per_seat, p.top_cohort_average,
            p.total_applications, p.eager_applications, p.available_seats,
        )
    return stats


def rank_programs(
        records: Iterable[ApplicationRecord],
        programs: Sequence[ProgramInfo],
) -> List[str]:
    return [p.program_id for p in compute_popularity(records, programs)]
