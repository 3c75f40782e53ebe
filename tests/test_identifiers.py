import pytest

from app.domain.identifiers import CandidateId, normalize
from app.domain.models import ApplicationRecord
from app.services.eligibility import eager_only, is_eager


class TestNormalize:
    @pytest.mark.parametrize("raw", [
        "123-456-789 01",
        "123 456 789 01",
        "12345678901",
        " 123-456-789-01 ",
        "abc-DEF 12",
        "",
        "---",
    ])
    def test_idempotent(self, raw):
        assert normalize(normalize(raw)) == normalize(raw)

    def test_formatting_variants_are_equal(self):
        assert normalize("123-456-789 01") == normalize("12345678901") == "12345678901"

    def test_case_insensitive(self):
        assert normalize("ab-12") == normalize("AB12") == "AB12"

    def test_none_is_empty(self):
        assert normalize(None) == ""

    def test_only_punctuation(self):
        assert normalize(" -_/. ") == ""


class TestCandidateId:
    def test_normalizes_on_construction(self):
        assert CandidateId("123-456-789 01") == "12345678901"

    def test_wrapping_is_noop(self):
        cid = CandidateId("123-456")
        assert CandidateId(cid) is cid

    def test_set_membership_ignores_formatting(self):
        seen = {CandidateId("123-456-789 01")}
        assert CandidateId("12345678901") in seen

    def test_record_normalizes_candidate(self):
        rec = ApplicationRecord("123-456-789 01", "P", 1, True, False, 4.0)
        assert isinstance(rec.candidate_id, CandidateId)
        assert rec.candidate_id == "12345678901"


class TestEligibility:
    @pytest.mark.parametrize("original,consent,expected", [
        (True, False, True),
        (False, True, True),
        (True, True, True),
        (False, False, False),
    ])
    def test_is_eager(self, make_record, original, consent, expected):
        assert is_eager(make_record("1", "P", 4.0, original=original, consent=consent)) is expected

    def test_eager_only_keeps_order(self, make_record):
        recs = [
            make_record("1", "P", 4.0),
            make_record("2", "P", 4.0, original=False),
            make_record("3", "P", 4.0, original=False, consent=True),
        ]
        assert [r.candidate_id for r in eager_only(recs)] == ["1", "3"]
