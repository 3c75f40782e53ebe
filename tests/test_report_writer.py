import pandas as pd

from app.domain.models import FundingTier, Outcome, OutcomeKind
from app.infrastructure.reporting.report_writer import ReportWriter, describe_outcome, safe_file_name
from app.services.admission_engine import AdmissionEngine

PRIMARY, SECONDARY = FundingTier.PRIMARY, FundingTier.SECONDARY


def _report(make_record, make_program):
    programs = [
        make_program("B1", 1, PRIMARY),
        make_program("B2", 2, PRIMARY),
        make_program("K1", 1, SECONDARY),
    ]
    engine = AdmissionEngine(programs)
    report = engine.run([
        make_record("T", "B1", 4.0),
        make_record("A", "B1", 4.5),
        make_record("A", "B2", 4.5),
        make_record("C", "B2", 3.5),
        make_record("T", "K1", 4.0),
    ], "T", tiers=[PRIMARY, SECONDARY], skipped_records=1)
    return report, engine.programs


class TestReportWriter:
    def test_writes_files_per_tier(self, tmp_path, make_record, make_program):
        report, programs = _report(make_record, make_program)
        written = ReportWriter(tmp_path).write(report, programs)

        assert all(p.exists() for p in written)
        assert (tmp_path / "budget" / "program_popularity.csv").exists()
        assert (tmp_path / "commercial" / "chance_analysis.txt").exists()

        admitted = pd.read_csv(tmp_path / "budget" / "admitted_lists.csv")
        assert list(admitted["candidate_id"]) == ["A", "C"]

        chance = (tmp_path / "budget" / "chance_analysis.txt").read_text(encoding="utf-8")
        assert "T" in chance
        assert "Пропущено битых строк при загрузке: 1" in chance

    def test_programs_of_interest_filter_report_only(self, tmp_path, make_record, make_program):
        report, programs = _report(make_record, make_program)
        ReportWriter(tmp_path, programs_of_interest=["B1"]).write(report, programs)

        outcomes = pd.read_csv(tmp_path / "budget" / "final_cutoff_analysis.csv")
        assert list(outcomes["program_id"]) == ["B1"]
        popularity = pd.read_csv(tmp_path / "budget" / "program_popularity.csv")
        assert set(popularity["program_id"]) == {"B1", "B2"}

    def test_previous_reports_are_replaced(self, tmp_path, make_record, make_program):
        report, programs = _report(make_record, make_program)
        stale = tmp_path / "budget" / "chance_analysis.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")

        ReportWriter(tmp_path).write(report, programs)
        assert stale.read_text(encoding="utf-8") != "old"

    def test_per_program_lists(self, tmp_path, make_record, make_program):
        report, programs = _report(make_record, make_program)
        written = ReportWriter(tmp_path).write(report, programs)

        budget = tmp_path / "budget"
        assert sorted(p.name for p in (budget / "programs").iterdir()) == ["B1.csv", "B2.csv"]
        assert (budget / "filtered_eager" / "B2_filtered_eager.csv") in written

        roster = pd.read_csv(budget / "programs" / "B1.csv")
        assert list(roster["candidate_id"]) == ["A", "T"]
        assert list(roster["status"]) == ["зачислен", "не проходит"]

        eager = pd.read_csv(budget / "filtered_eager" / "B2_filtered_eager.csv")
        assert list(eager["candidate_id"]) == ["A", "C"]
        assert list(eager["excluded_by_higher_priority"]) == ["Да", "Нет"]
        assert list(eager["admitted"]) == ["Нет", "Да"]

        applicants = pd.read_csv(budget / "all_applicants.csv")
        assert list(applicants["program_id"]) == ["B1", "B1", "B2", "B2"]
        assert (tmp_path / "commercial" / "programs" / "K1.csv").exists()

    def test_stale_program_lists_are_removed(self, tmp_path, make_record, make_program):
        report, programs = _report(make_record, make_program)
        stale = tmp_path / "budget" / "programs" / "OLD.csv"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")

        ReportWriter(tmp_path).write(report, programs)
        assert not stale.exists()


class TestSafeFileName:
    def test_program_id_becomes_file_name(self):
        name = safe_file_name("ОП СПО Фармация / 1 | Бюджетное финансирование | Очная")
        assert name == "ОП_СПО_Фармация_1_Бюджетное_финансирование_Очная"


class TestDescribeOutcome:
    def test_hypothetical_is_labelled_as_prediction(self):
        text = describe_outcome(Outcome(
            kind=OutcomeKind.HYPOTHETICAL, program_id="Q", candidate_score=4.0,
            cutoff_score=3.8, predicted_admission=True,
        ))
        assert "Прогноз" in text and "прошёл бы" in text

    def test_indeterminate(self):
        text = describe_outcome(Outcome(kind=OutcomeKind.INDETERMINATE, note="абитуриент не найден в списках"))
        assert "не найден" in text
