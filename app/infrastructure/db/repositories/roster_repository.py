# repositories/roster_repository.py
from typing import Dict, Iterable, List

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.domain.identifiers import CandidateId
from app.domain.models import FundingTier, ProgramInfo, RosterRow, TierAllocation
from app.infrastructure.db.models import (
    AllocationModel, ProgramCutoffModel, ProgramModel, RosterRowModel,
)


class RosterRepository:
    def __init__(self, session: Session):
        self._session = session

    # ——— МАППЕРЫ ——————————————————————————————————————————————
    @staticmethod
    def _to_program_model(p: ProgramInfo) -> ProgramModel:
        return ProgramModel(
            program_id=p.program_id,
            name=p.name,
            funding_source=p.funding_source,
            study_form=p.study_form,
            funding_tier=p.funding_tier.value,
            available_seats=p.available_seats,
        )

    @staticmethod
    def _to_program_domain(m: ProgramModel) -> ProgramInfo:
        return ProgramInfo(
            program_id=m.program_id,
            funding_tier=FundingTier(m.funding_tier),
            available_seats=m.available_seats,
            name=m.name,
            funding_source=m.funding_source,
            study_form=m.study_form,
        )

    @staticmethod
    def _to_row_model(r: RosterRow) -> RosterRowModel:
        return RosterRowModel(
            list_position=r.list_position,
            snils=r.snils,
            priority=r.priority,
            consent=r.consent,
            document_type=r.document_type,
            average_score=r.average_score,
            subject_scores=r.subject_scores,
            program_name=r.program_name,
            funding_source=r.funding_source,
            study_form=r.study_form,
            available_seats=r.available_seats,
        )

    @staticmethod
    def _to_row_domain(m: RosterRowModel) -> RosterRow:
        return RosterRow(
            list_position=m.list_position,
            snils=m.snils,
            priority=m.priority,
            consent=m.consent,
            document_type=m.document_type,
            average_score=m.average_score,
            subject_scores=m.subject_scores,
            program_name=m.program_name,
            funding_source=m.funding_source,
            study_form=m.study_form,
            available_seats=m.available_seats,
        )

    # ——— Списки поступающих ——————————————————————————————————————

    def replace_roster_rows(self, rows: Iterable[RosterRow]) -> int:
        """Полностью заменить сохранённые списки. Коммит — на вызывающей стороне."""
        self._session.execute(delete(RosterRowModel))
        objs = [self._to_row_model(r) for r in rows]
        if objs:
            self._session.bulk_save_objects(objs)
        return len(objs)

    def get_all_roster_rows(self) -> List[RosterRow]:
        models = self._session.query(RosterRowModel).order_by(RosterRowModel.id.asc()).all()
        return [self._to_row_domain(m) for m in models]

    def save_programs(self, programs: Iterable[ProgramInfo]) -> None:
        for p in programs:
            self._session.merge(self._to_program_model(p))

    def get_all_programs(self) -> List[ProgramInfo]:
        models = self._session.query(ProgramModel).all()
        return [self._to_program_domain(m) for m in models]

    # ——— Результаты распределения ————————————————————————————————

    def clear_allocations(self) -> None:
        self._session.execute(delete(AllocationModel))
        self._session.execute(delete(ProgramCutoffModel))

    def save_tier_allocation(self, run: TierAllocation) -> None:
        allocations: List[AllocationModel] = []
        cutoffs: List[ProgramCutoffModel] = []
        for idx, program_id in enumerate(run.order):
            result = run.results[program_id]
            cutoffs.append(ProgramCutoffModel(
                tier=run.tier.value,
                program_id=program_id,
                order_index=idx,
                available_seats=result.available_seats,
                admitted_count=len(result.admitted),
                cutoff_score=result.cutoff_score,
            ))
            allocations.extend(
                AllocationModel(tier=run.tier.value, program_id=program_id,
                                candidate_id=str(cid), position=pos)
                for pos, cid in enumerate(result.admitted, start=1)
            )
        self._session.bulk_save_objects(cutoffs)
        self._session.bulk_save_objects(allocations)

    def get_admitted(self, tier: FundingTier, program_id: str) -> List[CandidateId]:
        rows = (
            self._session.query(AllocationModel)
            .filter_by(tier=tier.value, program_id=program_id)
            .order_by(AllocationModel.position.asc())
            .all()
        )
        return [CandidateId(r.candidate_id) for r in rows]

    def get_cutoffs(self, tier: FundingTier) -> Dict[str, float | None]:
        rows = (
            self._session.query(ProgramCutoffModel)
            .filter_by(tier=tier.value)
            .order_by(ProgramCutoffModel.order_index.asc())
            .all()
        )
        return {r.program_id: r.cutoff_score for r in rows}

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
