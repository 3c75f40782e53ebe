import random

from app.domain.identifiers import CandidateId
from app.services.admission_simulator import (
    SequentialAdmissionSimulator, group_by_program, rank_candidates,
)


def _simulate(programs, records, order=None, seed=frozenset()):
    by_id = {p.program_id: p for p in programs}
    order = order or [p.program_id for p in programs]
    return SequentialAdmissionSimulator(by_id).allocate(order, group_by_program(records), seed)


class TestRanking:
    def test_score_then_priority_then_id(self, make_record):
        recs = [
            make_record("333", "P", 4.5, priority=1),
            make_record("222", "P", 4.5, priority=2),
            make_record("111", "P", 4.5, priority=1),
            make_record("444", "P", 5.0, priority=3),
        ]
        assert [r.candidate_id for r in rank_candidates(recs)] == ["444", "111", "333", "222"]


class TestAllocate:
    def test_priority_breaks_score_tie(self, make_record, make_program):
        records = [
            make_record("a", "P", 5.0, priority=1),
            make_record("b", "P", 4.5, priority=1),
            make_record("c", "P", 4.5, priority=2),
        ]
        result = _simulate([make_program("P", 2)], records)["P"]
        assert result.admitted == ["A", "B"]
        assert result.cutoff_score == 4.5
        assert [r.candidate_id for r in result.ranked] == ["A", "B", "C"]

    def test_admitted_candidate_leaves_less_popular_program(self, make_record, make_program):
        programs = [make_program("P1", 1), make_program("P2", 1)]
        records = [
            make_record("C", "P1", 5.0, priority=2),
            make_record("X", "P1", 4.0),
            make_record("C", "P2", 5.0, priority=1),
            make_record("Y", "P2", 3.0),
        ]
        results = _simulate(programs, records, order=["P1", "P2"])
        assert results["P1"].admitted == ["C"]
        assert "C" not in results["P2"].admitted
        assert results["P2"].admitted == ["Y"]
        assert results["P2"].excluded == ["C"]
        assert results["P2"].cutoff_score == 3.0

    def test_non_eager_never_admitted(self, make_record, make_program):
        records = [
            make_record("1", "P", 5.0, original=False, consent=False),
            make_record("2", "P", 3.0, original=False, consent=True),
        ]
        result = _simulate([make_program("P", 2)], records)["P"]
        assert result.admitted == ["2"]
        assert result.cutoff_score is None
        assert not result.is_filled

    def test_zero_seats_admits_nobody(self, make_record, make_program):
        result = _simulate([make_program("P", 0)], [make_record("1", "P", 5.0)])["P"]
        assert result.admitted == []
        assert result.cutoff_score is None

    def test_program_without_records(self, make_program):
        result = _simulate([make_program("P", 3)], [])["P"]
        assert result.admitted == [] and result.ranked == [] and result.cutoff_score is None

    def test_seed_excludes_and_is_not_mutated(self, make_record, make_program):
        seed = {CandidateId("1")}
        records = [make_record("1", "P", 5.0), make_record("2", "P", 4.0), make_record("3", "P", 3.0)]
        result = _simulate([make_program("P", 1)], records, seed=seed)["P"]
        assert result.admitted == ["2"]
        assert result.excluded == ["1"]
        assert seed == {CandidateId("1")}

    def test_seed_matches_regardless_of_formatting(self, make_record, make_program):
        records = [make_record("123-456-789 01", "P", 5.0), make_record("2", "P", 4.0)]
        result = _simulate([make_program("P", 1)], records, seed=frozenset({"12345678901"}))["P"]
        assert result.admitted == ["2"]

    def test_deterministic_tie_break(self, make_record, make_program):
        records = [make_record("222", "P", 4.0), make_record("111", "P", 4.0)]
        first = _simulate([make_program("P", 1)], records)
        second = _simulate([make_program("P", 1)], records)
        assert first["P"].admitted == ["111"]
        assert first == second


class TestAllocationInvariants:
    def _dataset(self, make_record, make_program):
        rng = random.Random(20240715)
        programs = [make_program(f"P{i}", rng.randint(0, 6)) for i in range(8)]
        records = []
        for c in range(60):
            chosen = rng.sample(programs, rng.randint(1, 4))
            score = round(rng.uniform(3.0, 5.0), 1)
            for prio, p in enumerate(chosen, start=1):
                records.append(make_record(
                    f"{c:03d}-{c:03d}", p.program_id, score, priority=prio,
                    original=rng.random() < 0.6, consent=rng.random() < 0.3,
                ))
        return programs, records

    def test_exclusion_monotonicity_and_seat_bound(self, make_record, make_program):
        programs, records = self._dataset(make_record, make_program)
        order = [p.program_id for p in programs]
        results = _simulate(programs, records, order=order)

        taken = set()
        for p in programs:
            admitted = results[p.program_id].admitted
            assert len(admitted) <= p.available_seats
            assert not taken.intersection(admitted)
            assert len(set(admitted)) == len(admitted)
            taken.update(admitted)

    def test_identical_input_identical_output(self, make_record, make_program):
        programs, records = self._dataset(make_record, make_program)
        assert repr(_simulate(programs, records)) == repr(_simulate(programs, records))
