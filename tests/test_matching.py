"""Tests for descriptor scoring, greedy assignment and similarity tiers."""

import math

import numpy as np
import pytest

from conftest import BIFURCATION, ENDING, make_minutiae
from fingerprint_core.descriptors.descriptor_matching import (
    MinutiaeMatcher,
    aggregate_similarity,
    angle_similarity,
    descriptor_score,
    greedy_assignment,
    neighbor_similarity
)
from fingerprint_core.descriptors.local_neighborhood import MinutiaDescriptor
from fingerprint_core.minutiae.minutiae_extraction import FeatureSet, Minutia
from fingerprint_core.registry.matcher_interface import MatchResult
from fingerprint_core.utils.config import MatcherConfig


# -----------------------------------------------------------------------------
# Component similarities
# -----------------------------------------------------------------------------

def test_angle_similarity_is_modulo_pi():
    assert angle_similarity(0.0, math.pi) == pytest.approx(1.0)
    assert angle_similarity(0.0, math.pi / 2) == pytest.approx(0.0)
    assert angle_similarity(0.1, math.pi - 0.1) == pytest.approx(1 - 0.2 / (math.pi / 2))


def test_neighbor_similarity_empty_cases():
    assert neighbor_similarity([], []) == 0.5
    assert neighbor_similarity([(10.0, 0.0)], []) == 0.2
    assert neighbor_similarity([], [(10.0, 0.0)]) == 0.2


def test_neighbor_similarity_formula():
    one = [(10.0, 0.0)]
    four = [(10.0, 0.0), (20.0, 0.0), (30.0, 0.0), (38.0, 0.0)]

    # 2 * 1 / ((1 + 4) / 2)
    assert neighbor_similarity(one, four) == pytest.approx(0.8)
    assert neighbor_similarity(four, four) == 1.0
    assert neighbor_similarity([(10.0, 0.0)], [(30.0, 0.0)]) == 0.0


def test_neighbor_tolerances():
    assert neighbor_similarity([(10.0, 0.0)], [(17.9, 0.29)]) == 1.0
    assert neighbor_similarity([(10.0, 0.0)], [(18.0, 0.0)]) == 0.0
    assert neighbor_similarity([(10.0, 0.0)], [(10.0, 0.31)]) == 0.0
    # Relative angles wrap around ±π
    assert neighbor_similarity([(10.0, 3.1)], [(10.0, -3.1)]) == 1.0


def test_different_types_never_match():
    a = MinutiaDescriptor(Minutia(0, 0, 0.0, ENDING), ((10.0, 0.0),))
    b = MinutiaDescriptor(Minutia(0, 0, 0.0, BIFURCATION), ((10.0, 0.0),))

    assert descriptor_score(a, b) == 0.0


def test_weak_component_is_penalized():
    a = MinutiaDescriptor(Minutia(0, 0, 0.0, ENDING), ())
    b = MinutiaDescriptor(Minutia(5, 5, 0.0, ENDING), ())

    # 0.3 * 1.0 + 0.7 * 0.5, then * 0.6
    assert descriptor_score(a, b) == pytest.approx(0.39)


def test_strong_pair_scores_one():
    a = MinutiaDescriptor(Minutia(0, 0, 0.2, ENDING), ((15.0, 1.0),))

    assert descriptor_score(a, a) == pytest.approx(1.0)


# -----------------------------------------------------------------------------
# Greedy assignment
# -----------------------------------------------------------------------------

def test_greedy_assignment_is_not_symmetric():
    scores = np.array([
        [0.9, 0.95],
        [0.5, 0.9],
    ])

    assert len(greedy_assignment(scores)) == 1
    assert len(greedy_assignment(scores.T)) == 2


def test_greedy_assignment_first_column_wins_ties():
    matches = greedy_assignment(np.array([[0.8, 0.8]]))

    assert [(m.idx1, m.idx2) for m in matches] == [(0, 0)]


def test_greedy_assignment_threshold_is_exclusive():
    assert greedy_assignment(np.array([[0.75]])) == []


def test_greedy_assignment_consumes_columns():
    scores = np.array([
        [0.9, 0.1],
        [0.95, 0.2],
    ])

    matches = greedy_assignment(scores)

    assert [(m.idx1, m.idx2) for m in matches] == [(0, 0)]


# -----------------------------------------------------------------------------
# Similarity tiers
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("matched, high_quality, expected, branch", [
    (1, 0, 0.03, "very_low"),
    (2, 0, 0.06, "very_low"),
    (3, 0, 0.18, "weak"),
    (4, 0, 0.34, "moderate"),
    (5, 5, 0.425, "moderate"),
    (6, 2, 0.6, "high"),
    (6, 4, 0.69, "high"),
    (10, 10, 1.0, "high"),
])
def test_aggregate_similarity_tiers(matched, high_quality, expected, branch):
    score, applied = aggregate_similarity(matched, high_quality, 10, 10)

    assert score == pytest.approx(expected)
    assert applied == branch


def test_quality_boost_needs_three_pairs():
    score, _ = aggregate_similarity(2, 2, 3, 3)

    assert score == pytest.approx(2 / 3)


def test_aggregate_similarity_without_minutiae():
    assert aggregate_similarity(0, 0, 0, 0) == (0.0, "insufficient_features")


# -----------------------------------------------------------------------------
# Matcher
# -----------------------------------------------------------------------------

def test_self_similarity_is_one(distinct_set):
    matcher = MinutiaeMatcher()

    details = matcher.match_details(distinct_set, distinct_set)

    assert details["similarity"] == pytest.approx(1.0)
    assert details["matched_pairs"] == len(distinct_set)
    assert details["branch"] == "high"


def test_insufficient_features():
    small = make_minutiae([(10 * k, 0, 0.0) for k in range(4)])
    large = make_minutiae([(10 * k, 0, 0.0) for k in range(20)])
    matcher = MinutiaeMatcher()

    assert matcher.compute_similarity(small, large) == 0.0
    assert matcher.compute_similarity(FeatureSet(), FeatureSet()) == 0.0
    assert matcher.match_details(small, large)["branch"] == "insufficient_features"


def test_dissimilar_counts_score_fixed_value():
    twelve = make_minutiae([(20 * k, 0, 0.0) for k in range(12)])
    five = make_minutiae([(20 * k, 0, 0.0) for k in range(5)])
    matcher = MinutiaeMatcher()

    assert matcher.compute_similarity(twelve, five) == pytest.approx(0.3)
    assert matcher.match_details(five, twelve)["branch"] == "count_ratio"


def test_two_shared_pairs_out_of_ten(two_pair_scenario):
    probe, reference = two_pair_scenario
    matcher = MinutiaeMatcher()

    details = matcher.match_details(probe, reference)

    assert details["matched_pairs"] == 2
    assert details["pairs"][0][:2] == (0, 0)
    assert details["pairs"][1][:2] == (1, 1)
    assert details["similarity"] == pytest.approx(0.06)


def test_match_applies_threshold(distinct_set, two_pair_scenario):
    matcher = MinutiaeMatcher()
    probe, reference = two_pair_scenario

    genuine = matcher.match(distinct_set, distinct_set)
    impostor = matcher.match(probe, reference)

    assert genuine.is_match
    assert not impostor.is_match
    assert impostor.confidence == impostor.similarity_score
    assert "similarity" not in impostor.details


def test_threshold_is_configurable(two_pair_scenario):
    matcher = MinutiaeMatcher(MatcherConfig(match_threshold=0.05))

    assert matcher.match(*two_pair_scenario).is_match


def test_scores_are_bounded(distinct_set, two_pair_scenario):
    matcher = MinutiaeMatcher()
    probe, reference = two_pair_scenario

    for a, b in [(distinct_set, probe), (reference, distinct_set), (probe, reference)]:
        assert 0.0 <= matcher.compute_similarity(a, b) <= 1.0


def test_match_result_decision_is_inclusive():
    result = MatchResult.from_similarity(0.7, 0.7)

    assert result.is_match
    assert result.confidence == 0.7
    assert result.to_dict()["confidence"] == 0.7


def test_explain_lists_parameters():
    explanation = MinutiaeMatcher().explain()

    assert explanation["name"] == "Minutiae"
    assert explanation["parameters"]["acceptance_threshold"] == 0.75


def test_mixed_identical_sets_match():
    endings = make_minutiae([(10 * k, 10 * k, 0.0) for k in range(1, 6)])
    bifurcations = make_minutiae(
        [(50 + 10 * k, 10 * k, math.pi / 4) for k in range(1, 6)], BIFURCATION
    )
    features = FeatureSet(tuple(endings + bifurcations), (200, 200))

    result = MinutiaeMatcher().match(features, features)

    assert result.is_match
    assert result.similarity_score >= 0.9
    assert result.details["match_ratio"] == 1.0


def test_disjoint_sets_score_zero():
    endings = make_minutiae([(20 * k, 0, 0.0) for k in range(6)])
    bifurcations = make_minutiae([(20 * k, 0, 0.0) for k in range(6)], BIFURCATION)

    details = MinutiaeMatcher().match_details(endings, bifurcations)

    assert details["matched_pairs"] == 0
    assert details["similarity"] == 0.0


def _keyed_set(key_angles, partner_type, filler_type):
    """
    Two key endings, each with one partner 20 px away at +1.2 rad, plus two
    isolated fillers.
    """
    points = []
    for x, angle in zip((100, 300), key_angles):
        points.append(Minutia(x, 100, angle, ENDING))
        points.append(Minutia(x + 20, 100, angle + 1.2, partner_type))
    points += [Minutia(x, 100, 0.0, filler_type) for x in (500, 600)]
    return FeatureSet(tuple(points), (700, 200))


def test_matcher_is_not_symmetric():
    # The first probe key prefers the second reference key, starving the
    # second probe key; in the other direction both keys pair up.
    probe = _keyed_set((0.3, 0.65), BIFURCATION, BIFURCATION)
    reference = _keyed_set((0.0, 0.35), ENDING, ENDING)
    matcher = MinutiaeMatcher()

    forward = matcher.match_details(probe, reference)
    backward = matcher.match_details(reference, probe)

    assert forward["matched_pairs"] == 1
    assert backward["matched_pairs"] == 2
    assert forward["similarity"] == pytest.approx(0.3 / 6)
    assert backward["similarity"] == pytest.approx(0.85 * 2 / 6)
    assert forward["similarity"] != backward["similarity"]
