# app/services/roster_preparation.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from app.config.config import settings
from app.config.logger import logger
from app.domain.identifiers import CandidateId
from app.domain.models import ApplicationRecord, FundingTier, ProgramInfo, RosterRow, make_program_id


@dataclass
class PreparedRoster:
    records: List[ApplicationRecord] = field(default_factory=list)
    programs: List[ProgramInfo] = field(default_factory=list)
    skipped: int = 0
    duplicates: int = 0


def _yes(text: str) -> bool:
    # на страницах: «Да» / «Нет», иногда с пояснениями
    return "да" in (text or "").strip().lower()


def parse_score(text: str) -> Optional[float]:
    """'4,563' → 4.563; пусто, мусор, отрицательное или NaN → None."""
    raw = (text or "").strip().replace(" ", "").replace(",", ".")
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value


def _parse_priority(text: str) -> Optional[int]:
    try:
        value = int((text or "").strip())
    except ValueError:
        return None
    return value if value >= 1 else None


def funding_tier_of(funding_source: str) -> Optional[FundingTier]:
    label = (funding_source or "").strip().lower()
    if label == settings.primary_funding_label.lower():
        return FundingTier.PRIMARY
    if label == settings.secondary_funding_label.lower():
        return FundingTier.SECONDARY
    return None


def is_record_better(candidate: ApplicationRecord, existing: ApplicationRecord) -> bool:
    """
    Из двух строк одного СНИЛС в одном конкурсе оставляем лучшую:
    оригинал > согласие > меньший номер приоритета.
    """
    if candidate.has_original_document != existing.has_original_document:
        return candidate.has_original_document
    if candidate.has_consent != existing.has_consent:
        return candidate.has_consent
    return candidate.priority_rank < existing.priority_rank


def row_to_record(row: RosterRow, program_id: str) -> Optional[ApplicationRecord]:
    candidate = CandidateId(row.snils)
    score = parse_score(row.average_score)
    priority = _parse_priority(row.priority)
    if not candidate or score is None or priority is None:
        return None
    return ApplicationRecord(
        candidate_id=candidate,
        program_id=program_id,
        priority_rank=priority,
        has_original_document=_yes(row.document_type),
        has_consent=_yes(row.consent),
        average_score=score,
        list_position=row.list_position,
    )


def prepare_records(rows: Iterable[RosterRow]) -> PreparedRoster:
    """
    Сырые строки → проверенные заявки и описания конкурсов.
    Битые строки отбрасываются и считаются, прогон не прерывается.
    """
    programs: Dict[str, ProgramInfo] = {}
    best: Dict[Tuple[str, CandidateId], ApplicationRecord] = {}
    order: List[Tuple[str, CandidateId]] = []
    skipped = 0
    duplicates = 0

    for row in rows:
        tier = funding_tier_of(row.funding_source)
        if tier is None:
            logger.debug("Неизвестный источник финансирования '%s' — строка пропущена", row.funding_source)
            skipped += 1
            continue

        program_id = make_program_id(row.program_name, row.funding_source, row.study_form)
        if program_id not in programs:
            programs[program_id] = ProgramInfo(
                program_id=program_id,
                funding_tier=tier,
                available_seats=max(int(row.available_seats or 0), 0),
                name=row.program_name.strip(),
                funding_source=row.funding_source.strip(),
                study_form=row.study_form.strip(),
            )

        record = row_to_record(row, program_id)
        if record is None:
            logger.debug("Битая строка #%s в %s (СНИЛС='%s', балл='%s', приоритет='%s')",
                         row.list_position, program_id, row.snils, row.average_score, row.priority)
            skipped += 1
            continue

        key = (program_id, record.candidate_id)
        existing = best.get(key)
        if existing is None:
            best[key] = record
            order.append(key)
            continue
        duplicates += 1
        if is_record_better(record, existing):
            best[key] = record

    if skipped:
        logger.warning("Пропущено битых строк: %d", skipped)
    if duplicates:
        logger.info("Схлопнуто дублей СНИЛС внутри конкурсов: %d", duplicates)

    return PreparedRoster(
        records=[best[k] for k in order],
        programs=list(programs.values()),
        skipped=skipped,
        duplicates=duplicates,
    )
