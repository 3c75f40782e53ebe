import copy

import pytest

from app.domain.errors import TierDependencyError
from app.domain.models import AllocationResult, FundingTier
from app.services.admission_engine import AdmissionEngine
from app.services.funding_tiers import partition, seed_exclusions

PRIMARY, SECONDARY = FundingTier.PRIMARY, FundingTier.SECONDARY


@pytest.fixture
def two_tier(make_record, make_program):
    programs = [
        make_program("B1", 1, PRIMARY),
        make_program("K1", 1, SECONDARY),
    ]
    records = [
        make_record("D", "B1", 4.8),
        make_record("D", "K1", 4.8),
        make_record("Z", "K1", 3.9),
    ]
    return programs, records


class TestPartition:
    def test_filters_by_program_tier(self, two_tier):
        programs, records = two_tier
        by_id = {p.program_id: p for p in programs}
        assert [r.program_id for r in partition(records, by_id, PRIMARY)] == ["B1"]
        assert [r.program_id for r in partition(records, by_id, SECONDARY)] == ["K1", "K1"]

    def test_seed_collects_all_primary_admits(self):
        results = {
            "B1": AllocationResult("B1", 2, admitted=["1", "2"]),
            "B2": AllocationResult("B2", 1, admitted=["3"]),
            "B3": AllocationResult("B3", 1),
        }
        seed = seed_exclusions(results)
        assert seed == frozenset({"1", "2", "3"})
        assert isinstance(seed, frozenset)


class TestTierSeeding:
    def test_primary_admit_absent_from_secondary(self, two_tier):
        programs, records = two_tier
        report = AdmissionEngine(programs).run(records, "Z", tiers=[PRIMARY, SECONDARY])

        assert report.tiers[PRIMARY].results["B1"].admitted == ["D"]
        secondary = report.tiers[SECONDARY].results["K1"]
        assert secondary.admitted == ["Z"]
        assert secondary.excluded == ["D"]

    def test_secondary_run_does_not_touch_primary_results(self, two_tier):
        programs, records = two_tier
        engine = AdmissionEngine(programs)
        primary = engine.run_tier(PRIMARY, records)
        snapshot = copy.deepcopy(primary.results)

        engine.run_tier(SECONDARY, records, primary=primary)
        engine.run_tier(SECONDARY, records, primary=primary)

        assert primary.results == snapshot

    def test_secondary_requires_primary(self, two_tier):
        programs, records = two_tier
        with pytest.raises(TierDependencyError):
            AdmissionEngine(programs).run_tier(SECONDARY, records)

    def test_without_secondary_tier_requested(self, two_tier):
        programs, records = two_tier
        report = AdmissionEngine(programs).run(records, "D", tiers=["primary"])
        assert list(report.tiers) == [PRIMARY]
