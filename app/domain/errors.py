class AdmissionError(Exception):
    """Базовая ошибка симуляции зачисления."""


class TierDependencyError(AdmissionError):
    """Платный уровень запрошен без завершённого прогона бюджетного."""


class MissingProgramInfoError(AdmissionError):
    """Заявка ссылается на программу, по которой нет данных о местах."""

    def __init__(self, program_ids):
        self.program_ids = sorted(program_ids)
        super().__init__(f"Нет данных о местах для программ: {', '.join(self.program_ids)}")
