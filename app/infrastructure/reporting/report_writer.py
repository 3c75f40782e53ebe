# app/infrastructure/reporting/report_writer.py
from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

import pandas as pd

from app.config.logger import logger
from app.domain.models import (
    AdmissionReport, AllocationResult, ApplicationRecord, FundingTier, Outcome, OutcomeKind,
    ProgramInfo, TierAllocation,
)
from app.services.admission_simulator import group_by_program, rank_candidates
from app.services.eligibility import is_eager

TIER_DIRS = {
    FundingTier.PRIMARY: "budget",
    FundingTier.SECONDARY: "commercial",
}

PROGRAMS_DIR = "programs"
EAGER_DIR = "filtered_eager"

_GENERATED = (
    "program_popularity.csv",
    "program_popularity.txt",
    "admitted_lists.csv",
    "final_cutoff_analysis.csv",
    "chance_analysis.txt",
    "all_applicants.csv",
    PROGRAMS_DIR,
    EAGER_DIR,
)

_STATUS = {
    OutcomeKind.ADMITTED: "✅ Зачислен",
    OutcomeKind.ADMITTED_BY_SCORE_NOT_PRIORITY: "☑️ Проходит по баллу, но место занято выше",
    OutcomeKind.NOT_ADMITTED: "❌ Не проходит",
    OutcomeKind.HYPOTHETICAL: "🔮 Прогноз",
    OutcomeKind.INDETERMINATE: "❓ Нет данных",
}


def _fmt_score(value) -> str:
    return "—" if value is None else f"{value:.4f}"


def popularity_frame(run: TierAllocation) -> pd.DataFrame:
    rows = []
    for i, p in enumerate(run.popularity, start=1):
        result = run.results[p.program_id]
        rows.append({
            "rank": i,
            "program_id": p.program_id,
            "available_seats": p.available_seats,
            "total_applications": p.total_applications,
            "eager_applications": p.eager_applications,
            "applications_per_seat": round(p.applications_per_seat, 4),
            "top_cohort_average": round(p.top_cohort_average, 4),
            "admitted": len(result.admitted),
            "cutoff_score": result.cutoff_score,
        })
    return pd.DataFrame(rows, columns=[
        "rank", "program_id", "available_seats", "total_applications", "eager_applications",
        "applications_per_seat", "top_cohort_average", "admitted", "cutoff_score",
    ])


def admitted_frame(run: TierAllocation) -> pd.DataFrame:
    rows = []
    for program_id in run.order:
        result = run.results[program_id]
        for pos, rec in enumerate(result.admitted_records, start=1):
            rows.append({
                "program_id": program_id,
                "position": pos,
                "candidate_id": str(rec.candidate_id),
                "average_score": rec.average_score,
                "priority": rec.priority_rank,
                "original_document": rec.has_original_document,
                "consent": rec.has_consent,
            })
    return pd.DataFrame(rows, columns=[
        "program_id", "position", "candidate_id", "average_score", "priority",
        "original_document", "consent",
    ])


_RECORD_COLUMNS = [
    "list_position", "candidate_id", "priority", "average_score", "original_document", "consent",
]


def _record_row(rec: ApplicationRecord) -> Dict:
    return {
        "list_position": rec.list_position,
        "candidate_id": str(rec.candidate_id),
        "priority": rec.priority_rank,
        "average_score": rec.average_score,
        "original_document": rec.has_original_document,
        "consent": rec.has_consent,
    }


def safe_file_name(program_id: str) -> str:
    """'ОП СПО Фармация | Бюджетное финансирование | Очная' → имя файла без пробелов и слэшей."""
    return re.sub(r"[^\w.\-]+", "_", program_id).strip("_") or "program"


def applicants_frame(run: TierAllocation) -> pd.DataFrame:
    """Все заявки уровня в порядке обработки конкурсов, как они пришли из списков."""
    by_program = group_by_program(run.records)
    rows = [
        {"program_id": program_id, **_record_row(rec), "eager": is_eager(rec)}
        for program_id in run.order
        for rec in by_program.get(program_id, [])
    ]
    return pd.DataFrame(rows, columns=["program_id", *_RECORD_COLUMNS, "eager"])


def _roster_status(rec: ApplicationRecord, admitted: set, excluded: set) -> str:
    if rec.candidate_id in admitted:
        return "зачислен"
    if not is_eager(rec):
        return "нет оригинала и согласия"
    if rec.candidate_id in excluded:
        return "зачислен на более популярный конкурс"
    return "не проходит"


def program_roster_frame(result: AllocationResult, records: Sequence[ApplicationRecord]) -> pd.DataFrame:
    """Полный рейтинг конкурса (все заявки) с итогом распределения по каждой."""
    admitted = set(result.admitted)
    excluded = set(result.excluded)
    rows = [
        {"rank": i, **_record_row(rec), "status": _roster_status(rec, admitted, excluded)}
        for i, rec in enumerate(rank_candidates(records), start=1)
    ]
    return pd.DataFrame(rows, columns=["rank", *_RECORD_COLUMNS, "status"])


def eager_frame(result: AllocationResult, records: Sequence[ApplicationRecord]) -> pd.DataFrame:
    """
    Только «активные» заявки конкурса в порядке рейтинга с пометками:
    исключён (уже занял место выше) и зачислен сюда.
    """
    admitted = set(result.admitted)
    excluded = set(result.excluded)
    eager = rank_candidates(r for r in records if is_eager(r))
    rows = [{
        "rank": i,
        **_record_row(rec),
        "excluded_by_higher_priority": "Да" if rec.candidate_id in excluded else "Нет",
        "admitted": "Да" if rec.candidate_id in admitted else "Нет",
    } for i, rec in enumerate(eager, start=1)]
    return pd.DataFrame(rows, columns=["rank", *_RECORD_COLUMNS, "excluded_by_higher_priority", "admitted"])


def outcomes_frame(outcomes: Iterable[Outcome]) -> pd.DataFrame:
    rows = [{
        "program_id": o.program_id,
        "tier": o.tier.value if o.tier else None,
        "status": o.kind.value,
        "position": o.position,
        "candidate_score": o.candidate_score,
        "cutoff_score": o.cutoff_score,
        "ahead_count": o.ahead_count,
        "queue_gap": o.queue_gap,
        "predicted_admission": o.predicted_admission,
        "informational": o.informational,
        "note": o.note,
    } for o in outcomes]
    return pd.DataFrame(rows, columns=[
        "program_id", "tier", "status", "position", "candidate_score", "cutoff_score",
        "ahead_count", "queue_gap", "predicted_admission", "informational", "note",
    ])


def _of_interest(outcome: Outcome, programs: Dict[str, ProgramInfo], interest: Sequence[str]) -> bool:
    if not interest or outcome.program_id is None:
        return True
    info = programs.get(outcome.program_id)
    name = info.name if info else outcome.program_id
    return any(name == p or outcome.program_id == p for p in interest)


def describe_outcome(o: Outcome) -> str:
    status = _STATUS[o.kind]
    if o.kind == OutcomeKind.INDETERMINATE:
        return f"{status}: {o.note}"

    parts = [f"{status}: {o.program_id}"]
    if o.kind == OutcomeKind.ADMITTED:
        parts.append(f"место {o.position}")
    if o.kind == OutcomeKind.HYPOTHETICAL:
        parts.append("прошёл бы" if o.predicted_admission else "не прошёл бы")
    parts.append(f"балл {_fmt_score(o.candidate_score)}, проходной {_fmt_score(o.cutoff_score)}")
    if o.kind == OutcomeKind.NOT_ADMITTED and o.queue_gap:
        parts.append(f"впереди без места ещё {o.queue_gap}")
    if o.note and o.kind != OutcomeKind.HYPOTHETICAL:
        parts.append(o.note)
    if o.informational:
        parts.append("справочно: уже зачислен на бюджет")
    return " — ".join(parts)


class ReportWriter:
    """
    Пишет отчёты прогона: по подкаталогу на уровень финансирования
    (budget/, commercial/). Предыдущие файлы в них удаляются.
    """

    def __init__(self, output_dir: Path, programs_of_interest: Sequence[str] = ()):
        self._output_dir = Path(output_dir)
        self._interest = list(programs_of_interest)

    def _clean(self, tier_dir: Path) -> None:
        for name in _GENERATED:
            path = tier_dir / name
            if path.is_file():
                path.unlink()
                logger.debug("   удалён %s", path)
            elif path.is_dir():
                shutil.rmtree(path)

    def write(self, report: AdmissionReport, programs: Dict[str, ProgramInfo]) -> List[Path]:
        written: List[Path] = []
        for tier, run in report.tiers.items():
            tier_dir = self._output_dir / TIER_DIRS[tier]
            tier_dir.mkdir(parents=True, exist_ok=True)
            self._clean(tier_dir)

            pop = popularity_frame(run)
            pop.to_csv(tier_dir / "program_popularity.csv", index=False)
            (tier_dir / "program_popularity.txt").write_text(self._popularity_text(pop), encoding="utf-8")
            admitted_frame(run).to_csv(tier_dir / "admitted_lists.csv", index=False)
            applicants_frame(run).to_csv(tier_dir / "all_applicants.csv", index=False)
            written.extend(self._write_program_lists(run, tier_dir))

            tier_outcomes = [o for o in report.outcomes if o.tier == tier or o.tier is None]
            shown = [o for o in tier_outcomes if _of_interest(o, programs, self._interest)]
            outcomes_frame(shown).to_csv(tier_dir / "final_cutoff_analysis.csv", index=False)
            (tier_dir / "chance_analysis.txt").write_text(
                self._chance_text(report, shown), encoding="utf-8"
            )
            written.extend(tier_dir / name for name in _GENERATED if name not in (PROGRAMS_DIR, EAGER_DIR))
            logger.info("Отчёты уровня %s записаны в %s", tier.value, tier_dir)
        return written

    @staticmethod
    def _write_program_lists(run: TierAllocation, tier_dir: Path) -> List[Path]:
        programs_dir = tier_dir / PROGRAMS_DIR
        eager_dir = tier_dir / EAGER_DIR
        programs_dir.mkdir(exist_ok=True)
        eager_dir.mkdir(exist_ok=True)

        by_program = group_by_program(run.records)
        paths: List[Path] = []
        for program_id in run.order:
            result = run.results[program_id]
            records = by_program.get(program_id, [])
            name = safe_file_name(program_id)

            roster_path = programs_dir / f"{name}.csv"
            program_roster_frame(result, records).to_csv(roster_path, index=False)
            eager_path = eager_dir / f"{name}_filtered_eager.csv"
            eager_frame(result, records).to_csv(eager_path, index=False)
            paths.extend([roster_path, eager_path])
        logger.debug("   списков по конкурсам: %d", len(run.order))
        return paths

    @staticmethod
    def _popularity_text(pop: pd.DataFrame) -> str:
        lines = ["Популярность конкурсов", "======================", ""]
        for row in pop.itertuples(index=False):
            lines.append(
                f"{row.rank}. {row.program_id}\n"
                f"   заявок на место: {row.applications_per_seat:.2f}\n"
                f"   средний балл верхней когорты: {row.top_cohort_average:.3f}\n"
                f"   мест: {row.available_seats}, заявок: {row.total_applications}, "
                f"активных: {row.eager_applications}, зачислено: {row.admitted}\n"
            )
        return "\n".join(lines)

    @staticmethod
    def _chance_text(report: AdmissionReport, outcomes: List[Outcome]) -> str:
        lines = [f"Шансы на зачисление для СНИЛС: {report.target}", "=" * 42, ""]
        if report.skipped_records:
            lines.append(f"Пропущено битых строк при загрузке: {report.skipped_records}")
            lines.append("")
        if not outcomes:
            lines.append("Нет конкурсов для отображения.")
        lines.extend(describe_outcome(o) for o in outcomes)
        return "\n".join(lines) + "\n"
