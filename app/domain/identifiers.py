from __future__ import annotations


def normalize(raw: str | None) -> str:
    """
    Каноническая форма идентификатора абитуриента (СНИЛС):
    только буквы и цифры, в верхнем регистре.
    '123-456-789 01' → '12345678901'. Никогда не падает, идемпотентна.
    """
    return "".join(ch for ch in (raw or "") if ch.isalnum()).upper()


class CandidateId(str):
    """
    Уже нормализованный идентификатор абитуриента.
    Сравнение и хеширование — как у обычной строки, поэтому годится для set/dict.
    """
    __slots__ = ()

    def __new__(cls, raw: str | None = "") -> "CandidateId":
        if isinstance(raw, CandidateId):
            return raw
        return super().__new__(cls, normalize(raw))

    def __repr__(self) -> str:
        return f"CandidateId({str.__repr__(self)})"
