from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from app.domain.identifiers import CandidateId


class FundingTier(str, Enum):
    """
    Уровень финансирования. Порядок объявления = порядок обработки:
    сначала бюджет, потом платное.
    """
    PRIMARY = "primary"
    SECONDARY = "secondary"

    @classmethod
    def ordered(cls, tiers) -> List["FundingTier"]:
        wanted = {cls(t) for t in tiers}
        return [t for t in cls if t in wanted]


def make_program_id(name: str, funding_source: str, study_form: str = "") -> str:
    """
    Одна и та же программа на другом финансировании или форме обучения —
    это другой конкурс.
    """
    parts = [name.strip(), funding_source.strip()]
    if study_form and study_form.strip():
        parts.append(study_form.strip())
    return " | ".join(parts)


@dataclass(frozen=True)
class ProgramInfo:
    """
    Конкурс: программа × финансирование × форма обучения.
    available_seats не меняется за время прогона.
    """
    program_id: str
    funding_tier: FundingTier
    available_seats: int
    name: str = ""
    funding_source: str = ""
    study_form: str = ""


@dataclass(frozen=True)
class ApplicationRecord:
    """
    Заявка абитуриента на один конкурс.
    candidate_id всегда нормализуется при создании.
    """
    candidate_id: CandidateId
    program_id: str
    priority_rank: int
    has_original_document: bool
    has_consent: bool
    average_score: float
    list_position: int = 0  # номер строки в опубликованном списке

    def __post_init__(self):
        object.__setattr__(self, "candidate_id", CandidateId(self.candidate_id))


@dataclass
class RosterRow:
    """
    Строка списка поступающих как есть, без разбора значений.
    """
    list_position: int
    snils: str
    priority: str
    consent: str
    document_type: str
    average_score: str
    subject_scores: str
    program_name: str
    funding_source: str
    study_form: str
    available_seats: int


@dataclass
class ProgramPopularity:
    """
    Статистика конкурса, по которой выстраивается порядок обработки.
    """
    program_id: str
    total_applications: int
    eager_applications: int
    available_seats: int
    applications_per_seat: float
    top_cohort_average: float


@dataclass
class AllocationResult:
    """
    Итог распределения по одному конкурсу.
    - admitted: зачисленные в порядке зачисления
    - cutoff_score: балл последнего зачисленного, None если места не заполнены
    - ranked: рассмотренные «активные» заявки (без исключённых) в порядке рейтинга
    - excluded: активные абитуриенты, которые к этому моменту уже заняли место выше
    """
    program_id: str
    available_seats: int
    admitted: List[CandidateId] = field(default_factory=list)
    cutoff_score: Optional[float] = None
    ranked: List[ApplicationRecord] = field(default_factory=list)
    excluded: List[CandidateId] = field(default_factory=list)

    @property
    def is_filled(self) -> bool:
        return self.available_seats > 0 and len(self.admitted) >= self.available_seats

    @property
    def admitted_records(self) -> List[ApplicationRecord]:
        return self.ranked[:len(self.admitted)]


@dataclass
class TierAllocation:
    """Завершённый прогон одного уровня финансирования."""
    tier: FundingTier
    popularity: List[ProgramPopularity]
    results: Dict[str, AllocationResult]
    records: List[ApplicationRecord]

    @property
    def order(self) -> List[str]:
        return [p.program_id for p in self.popularity]


class OutcomeKind(str, Enum):
    ADMITTED = "admitted"
    ADMITTED_BY_SCORE_NOT_PRIORITY = "admitted_by_score_not_priority"
    NOT_ADMITTED = "not_admitted"
    HYPOTHETICAL = "hypothetical"
    INDETERMINATE = "indeterminate"


@dataclass
class Outcome:
    """
    Вывод по одному конкурсу для целевого абитуриента.
    HYPOTHETICAL — прогноз, а не наблюдаемый факт: заявки на конкурс не было.
    """
    kind: OutcomeKind
    program_id: Optional[str] = None
    tier: Optional[FundingTier] = None
    candidate_score: Optional[float] = None
    cutoff_score: Optional[float] = None
    position: Optional[int] = None  # место в списке зачисленных (с 1)
    ahead_count: int = 0  # активные абитуриенты выше по рейтингу
    queue_gap: int = 0  # из них — оставшиеся без места
    predicted_admission: Optional[bool] = None
    informational: bool = False  # уже зачислен на бюджет
    note: str = ""


@dataclass
class AdmissionReport:
    target: CandidateId
    tiers: Dict[FundingTier, TierAllocation]
    outcomes: List[Outcome]
    skipped_records: int = 0
