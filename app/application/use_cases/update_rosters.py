from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

from sqlalchemy.exc import SQLAlchemyError

from app.config.logger import logger
from app.domain.models import RosterRow
from app.infrastructure.db.repositories.roster_repository import RosterRepository
from app.infrastructure.parser.roster_page_parser import RosterPageParser


class UpdateRostersUseCase:
    """
    Полная синхронизация списков поступающих с БД:
        1. собираем строки из локальных HTML и/или по URL
        2. заменяем сохранённые списки одним коммитом

    Ошибка одного источника не прерывает остальные.
    """

    def __init__(self, repo: RosterRepository, parser: RosterPageParser):
        self._repo = repo
        self._parser = parser

    def _collect_local(self, roster_dir: Path) -> List[RosterRow]:
        rows: List[RosterRow] = []
        if not roster_dir.is_dir():
            logger.warning("Каталог со списками %s не найден", roster_dir)
            return rows

        for path in sorted(roster_dir.glob("*.html")):
            logger.info("→ Обработка файла %s …", path.name)
            try:
                rows.extend(self._parser.parse_file(path))
            except Exception as e:
                logger.warning("✕ Пропускаем %s: %s", path.name, e)
        return rows

    def _collect_remote(self, urls: Sequence[str]) -> List[RosterRow]:
        rows: List[RosterRow] = []
        for url in urls:
            logger.info("→ Загрузка %s …", url)
            try:
                rows.extend(self._parser.parse_url(url))
            except Exception as e:
                logger.warning("✕ Пропускаем %s: %s", url, e)
        return rows

    def execute(self, mode: str, roster_dir: Path, urls: Sequence[str] = ()) -> int:
        logger.info("=== Синхронизация списков начинается (режим %s) ===", mode)
        rows: List[RosterRow] = []
        if mode in ("local", "both"):
            rows.extend(self._collect_local(roster_dir))
        if mode in ("internet", "both"):
            rows.extend(self._collect_remote(urls))

        if not rows:
            logger.info("Ни одной строки не найдено — сохранённые списки не трогаем")
            return 0

        try:
            n = self._repo.replace_roster_rows(rows)
            self._repo.commit()
        except SQLAlchemyError as db_err:
            logger.exception("Ошибка транзакции, выполняем rollback: %s", db_err)
            self._repo.rollback()
            raise

        logger.info("✅ Синхронизация завершена: сохранено строк %d", n)
        return n
