#!/usr/bin/env python3
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.application.use_cases.update_rosters import UpdateRostersUseCase
from app.config.config import settings
from app.config.logger import logger
from app.infrastructure.db.models import Base
from app.infrastructure.db.repositories.roster_repository import RosterRepository
from app.infrastructure.parser.roster_page_parser import RosterPageParser


def main():
    logger.info("=== abiturchance: обновление списков ===")
    # 1) Настройка БД
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.database_url, echo=settings.db_echo, future=True)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, future=True)
    session = Session()

    # 2) Запуск
    try:
        repo = RosterRepository(session)
        with RosterPageParser(headless=settings.parser_headless) as parser:
            n = UpdateRostersUseCase(repo=repo, parser=parser).execute(
                mode=settings.data_source_mode,
                roster_dir=settings.roster_dir,
                urls=settings.roster_urls,
            )
        print(f"✅ Строк в списках сохранено: {n}")
    except Exception as e:
        logger.exception("Ошибка при обновлении списков")
        print("❌ Ошибка при обновлении:", e, file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()
        logger.info("=== abiturchance: обновление завершено ===")


if __name__ == "__main__":
    main()
