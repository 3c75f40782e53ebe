from typing import Iterable, List

from app.domain.models import ApplicationRecord


def is_eager(record: ApplicationRecord) -> bool:
    """Активная заявка: подан оригинал документа или согласие на зачисление."""
    return record.has_original_document or record.has_consent


def eager_only(records: Iterable[ApplicationRecord]) -> List[ApplicationRecord]:
    return [r for r in records if is_eager(r)]
