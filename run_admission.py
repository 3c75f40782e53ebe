#!/usr/bin/env python3
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.application.use_cases.run_admission_analysis import RunAdmissionAnalysisUseCase
from app.config.config import settings
from app.config.logger import logger
from app.domain.errors import AdmissionError
from app.infrastructure.db.models import Base
from app.infrastructure.db.repositories.roster_repository import RosterRepository
from app.infrastructure.reporting.report_writer import ReportWriter, describe_outcome


def main() -> None:
    logger.info("=== Расчёт зачисления для СНИЛС %s ===", settings.target_snils or "<не задан>")
    if not settings.target_snils:
        print("❌ TARGET_SNILS не задан (переменная окружения или .env)", file=sys.stderr)
        sys.exit(2)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.database_url, echo=settings.db_echo, future=True)
    Base.metadata.create_all(engine)  # just in case
    Session = sessionmaker(bind=engine, future=True)
    session = Session()

    try:
        repo = RosterRepository(session)
        writer = ReportWriter(settings.output_dir, settings.programs_of_interest)
        report = RunAdmissionAnalysisUseCase(repo=repo, writer=writer).execute(
            target_snils=settings.target_snils,
            tiers=settings.funding_tiers,
        )
        for outcome in report.outcomes:
            print(describe_outcome(outcome))

        # сверка с тем, что реально легло в БД
        seats = {p.program_id: p.available_seats for p in repo.get_all_programs()}
        for tier in report.tiers:
            for program_id, cutoff in repo.get_cutoffs(tier).items():
                logger.info("   [%s] %s: мест %d, проходной %s", tier.value, program_id,
                            seats.get(program_id, 0), "—" if cutoff is None else f"{cutoff:.4f}")
        logger.info("✅ Расчёт завершён, отчёты в %s", settings.output_dir)
    except AdmissionError as exc:
        logger.error("❌ Расчёт невозможен: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logger.exception("❌ Ошибка расчёта: %s", exc)
        sys.exit(1)
    finally:
        session.close()
        logger.info("Сессия БД закрыта.")


if __name__ == "__main__":
    main()
