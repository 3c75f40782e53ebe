from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.config.logger import logger
from app.domain.models import AdmissionReport, FundingTier
from app.infrastructure.db.repositories.roster_repository import RosterRepository
from app.infrastructure.reporting.report_writer import ReportWriter
from app.services.admission_engine import AdmissionEngine
from app.services.roster_preparation import prepare_records


class RunAdmissionAnalysisUseCase:
    """
    • Берёт сохранённые списки, готовит заявки
    • Прогоняет бюджет и (если нужно) платное
    • Перезаписывает результаты распределения в БД и пишет отчёты
    """

    def __init__(self, repo: RosterRepository, writer: Optional[ReportWriter] = None):
        self._repo = repo
        self._writer = writer

    def execute(self, target_snils: str, tiers: Iterable = (FundingTier.PRIMARY,)) -> AdmissionReport:
        rows = self._repo.get_all_roster_rows()
        logger.info("→ Строк в сохранённых списках: %d", len(rows))

        prepared = prepare_records(rows)
        logger.info("   заявок: %d, конкурсов: %d, битых строк: %d",
                    len(prepared.records), len(prepared.programs), prepared.skipped)

        engine = AdmissionEngine(prepared.programs)
        report = engine.run(
            prepared.records,
            target_snils,
            tiers=tiers,
            skipped_records=prepared.skipped,
        )

        logger.info("→ Сохраняем результаты распределения…")
        try:
            self._repo.clear_allocations()
            self._repo.save_programs(prepared.programs)
            for run in report.tiers.values():
                self._repo.save_tier_allocation(run)
            self._repo.commit()
        except SQLAlchemyError as db_err:
            logger.exception("Ошибка транзакции, выполняем rollback: %s", db_err)
            self._repo.rollback()
            raise

        if self._writer is not None:
            self._writer.write(report, engine.programs)

        return report
