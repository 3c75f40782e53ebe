import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.domain.models import ApplicationRecord, FundingTier, ProgramInfo, RosterRow
from app.infrastructure.db.models import Base
from app.infrastructure.db.repositories.roster_repository import RosterRepository

BUDGET = "Бюджетное финансирование"
COMMERCIAL = "Коммерческое финансирование"


@pytest.fixture
def make_record():
    def _make(candidate_id, program_id, score, priority=1, original=True, consent=False):
        return ApplicationRecord(
            candidate_id=candidate_id,
            program_id=program_id,
            priority_rank=priority,
            has_original_document=original,
            has_consent=consent,
            average_score=score,
        )
    return _make


@pytest.fixture
def make_program():
    def _make(program_id, seats, tier=FundingTier.PRIMARY):
        return ProgramInfo(program_id=program_id, funding_tier=tier, available_seats=seats, name=program_id)
    return _make


@pytest.fixture
def make_row():
    def _make(snils, score, program="ОП СПО Лечебное дело", funding=BUDGET, seats=2,
              priority="1", consent="Нет", document="Да", position=1, form="Очная"):
        return RosterRow(
            list_position=position,
            snils=snils,
            priority=priority,
            consent=consent,
            document_type=document,
            average_score=score,
            subject_scores="",
            program_name=program,
            funding_source=funding,
            study_form=form,
            available_seats=seats,
        )
    return _make


@pytest.fixture
def repo():
    engine = create_engine("sqlite://", future=True)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, future=True)()
    try:
        yield RosterRepository(session)
    finally:
        session.close()
