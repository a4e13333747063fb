from types import SimpleNamespace

import pytest

from screening.filters import (
    CandidateStats, FilterSpec, ShortlistState, StatusFilter, active_filter_count, compute_stats,
    filter_candidates, is_auto_qualified, rank_candidates,
)


def cand(score=None, shortlisted=None, skills=None, experience=None, name="c"):
    return SimpleNamespace(
        name=name, match_score=score, is_shortlisted=shortlisted, skills=skills, experience=experience,
    )


@pytest.fixture
def pool():
    return [
        cand(92, True, ["Python", "AWS"], "Senior engineer at a startup", "a"),
        cand(78, False, ["React", "TypeScript"], "Frontend lead", "b"),
        cand(64, None, ["PostgreSQL", "python"], "Data analyst, 3 years", "c"),
        cand(35, None, [], "Intern", "d"),
        cand(None, None, None, None, "e"),
    ]


SPECS = [
    FilterSpec(),
    FilterSpec((60, 100)),
    FilterSpec(skill_search="python, react"),
    FilterSpec(experience_search="ENGINEER"),
    FilterSpec(shortlist_status=StatusFilter.PENDING),
    FilterSpec((30, 80), "sql", "analyst", StatusFilter.ALL),
]


def names(candidates):
    return [c.name for c in candidates]


def test_default_spec_is_identity(pool):
    assert filter_candidates(pool, FilterSpec()) == pool


@pytest.mark.parametrize("spec", SPECS)
def test_filter_is_idempotent(pool, spec):
    once = filter_candidates(pool, spec)
    assert filter_candidates(once, spec) == once


@pytest.mark.parametrize("spec", SPECS)
def test_filter_preserves_order(pool, spec):
    result = filter_candidates(pool, spec)
    positions = [pool.index(c) for c in result]
    assert positions == sorted(positions)


def test_unscored_candidate_counts_as_zero():
    unscored = cand()
    assert filter_candidates([unscored], FilterSpec((0, 100))) == [unscored]
    assert filter_candidates([unscored], FilterSpec((5, 100))) == []


def test_score_range_is_inclusive(pool):
    assert names(filter_candidates(pool, FilterSpec((64, 92)))) == ["a", "b", "c"]


@pytest.mark.parametrize("status, expected", [
    (StatusFilter.ALL, ["a", "b", "c", "d", "e"]),
    (StatusFilter.SHORTLISTED, ["a"]),
    (StatusFilter.REJECTED, ["b"]),
    (StatusFilter.PENDING, ["c", "d", "e"]),
])
def test_shortlist_status_selector(pool, status, expected):
    assert names(filter_candidates(pool, FilterSpec(shortlist_status=status))) == expected


def test_skill_search_is_or_of_substrings(pool):
    assert names(filter_candidates(pool, FilterSpec(skill_search=" PYTH , type"))) == ["a", "b", "c"]
    assert names(filter_candidates(pool, FilterSpec(skill_search="gres"))) == ["c"]


def test_empty_skill_list_never_matches_a_search(pool):
    result = filter_candidates(pool, FilterSpec(skill_search="a"))
    assert "d" not in names(result) and "e" not in names(result)


def test_blank_skill_terms_are_ignored(pool):
    assert filter_candidates(pool, FilterSpec(skill_search=" , ")) == pool


def test_experience_search_is_case_insensitive_substring(pool):
    assert names(filter_candidates(pool, FilterSpec(experience_search="STARTUP"))) == ["a"]
    assert names(filter_candidates(pool, FilterSpec(experience_search="lead"))) == ["b"]


def test_missing_experience_fails_any_search(pool):
    assert "e" not in names(filter_candidates(pool, FilterSpec(experience_search="i")))


@pytest.mark.parametrize("score_range", [(-1, 50), (10, 101), (80, 20)])
def test_invalid_score_range_rejected(score_range):
    with pytest.raises(ValueError):
        FilterSpec(score_range)


def test_stats_partition_total(pool):
    stats = compute_stats(pool)
    assert stats.total == 5
    assert (stats.shortlisted, stats.rejected, stats.pending) == (1, 1, 3)
    assert stats.shortlisted + stats.rejected + stats.pending == stats.total


def test_stats_empty():
    assert compute_stats([]) == CandidateStats()


def test_auto_qualified_ignores_decided_candidates():
    pool = [cand(99, True), cand(99, False), cand(99, None), cand(None, None)]
    assert compute_stats(pool, 60).auto_qualified == 1


def test_auto_qualified_uses_default_threshold():
    assert is_auto_qualified(cand(60, None), None)
    assert not is_auto_qualified(cand(59, None), None)


def test_end_to_end_threshold_scenario():
    candidates = rank_candidates([
        cand(80, True, name="x"), cand(65, None, name="y"), cand(75, None, name="z"),
    ])
    stats = compute_stats(candidates, 70)
    assert stats.auto_qualified == 1
    assert [c.name for c in candidates if is_auto_qualified(c, 70)] == ["z"]
    pending = filter_candidates(candidates, FilterSpec(shortlist_status="pending"))
    assert sorted(names(pending)) == ["y", "z"]


def test_rank_puts_unscored_last():
    ranked = rank_candidates([cand(None, name="n"), cand(40, name="l"), cand(90, name="h"), cand(0, name="z")])
    assert names(ranked) == ["h", "l", "z", "n"]


def test_active_filter_count():
    assert active_filter_count(FilterSpec()) == 0
    assert active_filter_count(FilterSpec((0, 90), "go", " ", StatusFilter.REJECTED)) == 3


@pytest.mark.parametrize("flag, state", [
    (None, ShortlistState.UNDECIDED), (True, ShortlistState.SHORTLISTED), (False, ShortlistState.REJECTED),
])
def test_shortlist_state_round_trips_flag(flag, state):
    assert ShortlistState.from_flag(flag) is state
    assert state.to_flag() is flag
