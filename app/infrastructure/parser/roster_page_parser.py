import re
import time
from pathlib import Path
from typing import List, Optional, Tuple

from selenium import webdriver
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    JavascriptException,
    StaleElementReferenceException,
    WebDriverException,
)
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from app.config.logger import logger
from app.domain.models import RosterRow

PROGRAM_PREFIX = "ОП СПО"
MIN_ROW_CELLS = 8

_FUNDING_RE = re.compile(r"Источник финансирования:\s*<i>([^<]+)</i>")
_FORM_RE = re.compile(r"Форма обучения:\s*<i>([^<]+)</i>")
_PLACES_RE = re.compile(r"Количество мест:\s*<i>(\d+)</i>")
# 123-456-789 01, 123-456-789-01, 12345678901
_SNILS_RE = re.compile(r"\b\d{3}-?\d{3}-?\d{3}[ -]?\d{2}\b")


def _safe_int(text: str, default: int = 0) -> int:
    try:
        return int((text or "").strip().replace(" ", ""))
    except ValueError:
        return default


def parse_program_header(html: str) -> Tuple[str, str, int]:
    """
    Из HTML блока над таблицей достаёт (источник финансирования, форма обучения, мест).
    Нет значения → 'Unknown' / 0.
    """
    funding = _FUNDING_RE.search(html or "")
    form = _FORM_RE.search(html or "")
    places = _PLACES_RE.search(html or "")
    return (
        funding.group(1).strip() if funding else "Unknown",
        form.group(1).strip() if form else "Unknown",
        int(places.group(1)) if places else 0,
    )


def extract_snils(text: str) -> str:
    """
    Ячейка со СНИЛС бывает вида 'СНИЛС: 123-456-789 01' или '123-456-789-01 Иванов'.
    Пустая ячейка → '' (такая строка потом отбрасывается как битая).
    """
    lines = [line.strip() for line in (text or "").splitlines()]
    for line in lines:
        if line.startswith("СНИЛС:"):
            return line.replace("СНИЛС:", "", 1).strip()
        m = _SNILS_RE.search(line)
        if m:
            return m.group(0)
        if len(line) > 3 and any(ch.isalnum() for ch in line):
            head = line.split(" ", 1)[0]
            if " " not in line and len(line) > 5:
                return line
            if len(head) > 5:
                return head
    return next((line for line in lines if line), "")


def row_from_cells(cells: List[str], program_name: str, funding_source: str,
                   study_form: str, available_seats: int) -> Optional[RosterRow]:
    """Тексты ячеек строки таблицы → RosterRow. Неполная строка → None."""
    if len(cells) < MIN_ROW_CELLS:
        return None
    return RosterRow(
        list_position=_safe_int(cells[0]),
        snils=extract_snils(cells[2]),
        priority=(cells[3] or "").strip(),
        consent=(cells[4] or "").strip(),
        document_type=(cells[5] or "").strip(),
        average_score=(cells[6] or "").strip(),
        subject_scores=(cells[7] or "").strip(),
        program_name=program_name,
        funding_source=funding_source,
        study_form=study_form,
        available_seats=available_seats,
    )


class RosterPageParser:
    """
    Через Selenium открывает страницу со списками поступающих (локальный
    HTML-файл или URL) и разбирает все программы на ней:
      - заголовок программы: <p><strong>ОП СПО …</strong></p>,
        рядом — источник финансирования, форма обучения, количество мест;
      - i-й заголовок соответствует i-й таблице table.table-bordered;
      - строки: tbody tr.srt.
    """

    PAGE_TIMEOUT = 30
    RETRIES = 2
    RETRY_SLEEP_SEC = 2.0

    def __init__(self, headless: bool = True):
        logger.info("Запускаем ChromeDriver (headless=%s)", headless)
        options = webdriver.ChromeOptions()
        if headless:
            options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-gpu")
        options.add_argument("--lang=ru-RU")
        options.page_load_strategy = "normal"

        service = Service(ChromeDriverManager().install())
        self._driver = webdriver.Chrome(service=service, options=options)
        self._driver.set_page_load_timeout(self.PAGE_TIMEOUT)
        self._wait = WebDriverWait(self._driver, self.PAGE_TIMEOUT)

    # --------------- helpers -----------------

    def _root(self):
        """Для сайта берём только div.data-wrap, если он есть."""
        wraps = self._driver.find_elements(By.CSS_SELECTOR, "div.data-wrap")
        if wraps:
            logger.debug("Найден div.data-wrap — разбираем только его")
            return wraps[0]
        return self._driver

    def _program_blocks(self, root) -> List[Tuple[str, str]]:
        """[(название программы, innerHTML блока-родителя)] в порядке страницы."""
        blocks: List[Tuple[str, str]] = []
        for strong in root.find_elements(By.CSS_SELECTOR, "p > strong"):
            name = (strong.text or "").strip()
            if not name.startswith(PROGRAM_PREFIX):
                continue
            try:
                container = strong.find_element(By.XPATH, "./../..")
                html = container.get_attribute("innerHTML") or ""
            except NoSuchElementException:
                html = ""
            blocks.append((name, html))
        return blocks

    def _parse_page(self, source: str) -> List[RosterRow]:
        root = self._root()
        blocks = self._program_blocks(root)
        tables = root.find_elements(By.CSS_SELECTOR, "table.table-bordered")

        if not blocks:
            logger.warning("На странице %s не найдено ни одной программы", source)
            return []

        rows: List[RosterRow] = []
        for i, (name, html) in enumerate(blocks):
            funding, form, seats = parse_program_header(html)
            if i >= len(tables):
                logger.warning("Для программы '%s' нет таблицы — пропускаем", name)
                continue

            found = 0
            for j, tr in enumerate(tables[i].find_elements(By.CSS_SELECTOR, "tbody tr.srt"), start=1):
                try:
                    cells = [td.text or "" for td in tr.find_elements(By.TAG_NAME, "td")]
                    row = row_from_cells(cells, name, funding, form, seats)
                    if row is None:
                        logger.debug("Неполная строка #%d в '%s' — пропускаем", j, name)
                        continue
                    rows.append(row)
                    found += 1
                except StaleElementReferenceException as e:
                    logger.warning("Строка #%d в '%s' пропала из DOM: %s", j, name, e)

            logger.info("   '%s' (%s, %s): мест %d, заявок %d", name, funding, form, seats, found)
        return rows

    def _load(self, url: str) -> None:
        self._driver.get(url)
        self._wait.until(EC.presence_of_element_located((By.TAG_NAME, "body")))

    # --------------- основной сценарий -----------------

    def parse_url(self, url: str) -> List[RosterRow]:
        """
        Загружает страницу и разбирает все программы.
        Делает несколько попыток при временных ошибках.
        """
        last_err: Optional[Exception] = None
        for attempt in range(1, self.RETRIES + 1):
            try:
                logger.info("Разбираем %s (попытка %d/%d)", url, attempt, self.RETRIES)
                self._load(url)
                return self._parse_page(url)
            except (TimeoutException, StaleElementReferenceException, JavascriptException) as e:
                last_err = e
                logger.warning("Временная ошибка на %s: %s", url, e, exc_info=True)
                time.sleep(self.RETRY_SLEEP_SEC)
            except WebDriverException as e:
                last_err = e
                logger.error("Критическая ошибка на %s: %s", url, e, exc_info=True)
                time.sleep(self.RETRY_SLEEP_SEC)

        assert last_err is not None
        logger.error("Не удалось разобрать %s после %d попыток.", url, self.RETRIES)
        raise last_err

    def parse_file(self, path: Path) -> List[RosterRow]:
        return self.parse_url(Path(path).resolve().as_uri())

    # --------------- lifecycle -----------------

    def close(self) -> None:
        try:
            self._driver.quit()
            logger.info("ChromeDriver остановлен")
        except WebDriverException:
            pass

    def __enter__(self) -> "RosterPageParser":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
