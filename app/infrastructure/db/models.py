from sqlalchemy import Column, String, Boolean, ForeignKey, Integer, Float
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class ProgramModel(Base):
    __tablename__ = 'programs'
    program_id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    funding_source = Column(String, nullable=False)
    study_form = Column(String, nullable=False, default="")
    funding_tier = Column(String, nullable=False)
    available_seats = Column(Integer, nullable=False)


class RosterRowModel(Base):
    """
    Строка списка как есть (без разбора): битые значения отсеиваются
    при подготовке к расчёту, а не при сохранении.
    """
    __tablename__ = 'roster_rows'
    id = Column(Integer, primary_key=True, autoincrement=True)
    list_position = Column(Integer, nullable=False)
    snils = Column(String, nullable=False)
    priority = Column(String, nullable=False)
    consent = Column(String, nullable=False)
    document_type = Column(String, nullable=False)
    average_score = Column(String, nullable=False)
    subject_scores = Column(String, nullable=False, default="")
    program_name = Column(String, nullable=False)
    funding_source = Column(String, nullable=False)
    study_form = Column(String, nullable=False)
    available_seats = Column(Integer, nullable=False)


# ────────── Результаты распределения ─────────────────────────────────────
class AllocationModel(Base):
    """
    Зачисленный: (уровень, конкурс, СНИЛС) -> место в списке зачисленных.
    """
    __tablename__ = 'allocations'

    tier = Column(String, primary_key=True)
    program_id = Column(String, ForeignKey('programs.program_id'), primary_key=True)
    candidate_id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False)

    program = relationship('ProgramModel')


class ProgramCutoffModel(Base):
    """
    Итог конкурса: место в порядке популярности, заполненность, проходной балл.
    """
    __tablename__ = 'program_cutoffs'

    tier = Column(String, primary_key=True)
    program_id = Column(String, ForeignKey('programs.program_id'), primary_key=True)
    order_index = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    admitted_count = Column(Integer, nullable=False)
    cutoff_score = Column(Float, nullable=True)

    program = relationship('ProgramModel')
