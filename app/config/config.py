# app/config/config.py
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _PROJECT_ROOT / "data"
_DEFAULT_OUTPUT_DIR = _PROJECT_ROOT / "output"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    # окружение
    env: str = Field("dev", alias="ENV")
    data_dir: Path = Field(_DEFAULT_DATA_DIR, alias="DATA_DIR")
    output_dir: Path = Field(_DEFAULT_OUTPUT_DIR, alias="OUTPUT_DIR")

    # ───────────────── Целевой абитуриент ─────────────────────────────
    # СНИЛС в любом формате: «123-456-789 01» и «12345678901» — одно и то же.
    target_snils: str = Field("", alias="TARGET_SNILS")
    # Влияет только на отчёт, распределение всегда считается по всем программам.
    programs_of_interest: list[str] = Field(default_factory=list, alias="PROGRAMS_OF_INTEREST")
    # Какие уровни финансирования считать: "primary" (бюджет), "secondary" (платное).
    funding_tiers: list[Literal["primary", "secondary"]] = Field(["primary"], alias="FUNDING_TIERS")

    # ───────────────── Источники списков ──────────────────────────────
    data_source_mode: Literal["local", "internet", "both"] = Field("local", alias="DATA_SOURCE_MODE")
    roster_dir_name: str = Field("data-source", alias="ROSTER_DIR")
    roster_urls: list[str] = Field(default_factory=list, alias="ROSTER_URLS")

    # Подписи уровней финансирования так, как они написаны на страницах приёмной комиссии
    primary_funding_label: str = Field("Бюджетное финансирование", alias="PRIMARY_FUNDING_LABEL")
    secondary_funding_label: str = Field("Коммерческое финансирование", alias="SECONDARY_FUNDING_LABEL")

    parser_headless: bool = Field(True, alias="PARSER_HEADLESS")

    # БД
    db_url: str | None = Field(None, alias="DATABASE_URL")
    db_filename: str = Field("abitur.db", alias="DB_FILENAME")
    db_echo: bool = Field(False, alias="DB_ECHO")

    @field_validator("data_dir", "output_dir", mode="after")
    @classmethod
    def _resolve_dir(cls, value: Path) -> Path:
        return Path(value).expanduser().resolve()

    @property
    def roster_dir(self) -> Path:
        return self.data_dir / self.roster_dir_name

    @property
    def database_url(self) -> str:
        return self.db_url or f"sqlite:///{self.data_dir / self.db_filename}"


settings = Settings()
