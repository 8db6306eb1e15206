"""
scoring.py — Deterministic report scoring
==========================================
Pure functions that turn stored responses into the numeric half of a
Report.  Nothing here performs I/O, so the same responses and configuration
always give bit-identical scores.

Pipeline
--------
  max_attainable_weights(config)              per-dimension ceiling
  compute_dimension_scores(config, responses) 0–100, two decimals
  overall_score(config, scores)               weighted mean by DimensionSpec.weight
  select_archetype(policy, scores, overall, dimension_order)
  strengths_and_gaps(scores, dimension_order)
  market_readiness(overall)
  infer_level(policy, scores, overall, level_hints(config, responses))

Ties are always broken by dimension declaration order.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from career_readiness.models import ArchetypePolicy, AssessmentConfig, LevelPolicy, Response

# Highest threshold first; the first one met wins.
_MARKET_READINESS: list[tuple[float, str]] = [
    (80.0, "You're ready to compete for senior roles now. Your gaps are refinements, not blockers."),
    (65.0, "You're close, but one or two gaps will stand out to hiring managers. Close them in the next 60 days."),
    (50.0, "You have foundational strengths but need three to six months of focused development before targeting your next level."),
    (0.0,  "Focus on building core competencies first. Rushing to apply will waste opportunities."),
]


@dataclass(frozen=True)
class ArchetypeMatch:
    name:        str
    description: str
    rule_based:  bool   # False when derived from the top dimension


def max_attainable_weights(config: AssessmentConfig) -> dict[str, float]:
    """
    Best achievable contribution per dimension.

    Single-select questions contribute their largest positive weight;
    multi-select questions contribute the sum of all positive weights.
    """
    totals = {dim: 0.0 for dim in config.dimension_ids()}
    for module in config.modules:
        for question in module.questions:
            for dim in totals:
                positives = [
                    o.dimension_weights[dim]
                    for o in question.options
                    if o.dimension_weights.get(dim, 0.0) > 0
                ]
                if not positives:
                    continue
                totals[dim] += sum(positives) if question.multi_select else max(positives)
    return totals


def compute_dimension_scores(
    config: AssessmentConfig,
    responses: Mapping[str, Response],
    maxima: Optional[Mapping[str, float]] = None,
) -> dict[str, float]:
    """Normalised 0–100 score per dimension, in declaration order."""
    maxima = maxima if maxima is not None else max_attainable_weights(config)
    raw = {dim: 0.0 for dim in config.dimension_ids()}

    # Walk the configuration, not the dict, so float sums are order-stable.
    for module in config.modules:
        for question in module.questions:
            response = responses.get(question.id)
            if response is None:
                continue
            for value in sorted(response.selected_values):
                option = question.option(value)
                if option is None:
                    continue
                for dim, weight in option.dimension_weights.items():
                    raw[dim] += weight

    scores: dict[str, float] = {}
    for dim, total in raw.items():
        ceiling = maxima.get(dim, 0.0)
        if ceiling <= 0:
            scores[dim] = 0.0
            continue
        scores[dim] = round(min(100.0, max(0.0, total / ceiling * 100.0)), 2)
    return scores


def overall_score(config: AssessmentConfig, scores: Mapping[str, float]) -> float:
    weighted = 0.0
    total_weight = 0.0
    for spec in config.dimensions:
        weighted += scores.get(spec.id, 0.0) * spec.weight
        total_weight += spec.weight
    if total_weight <= 0:
        return 0.0
    return round(weighted / total_weight, 2)


def top_dimension(scores: Mapping[str, float], dimension_order: Sequence[str]) -> Optional[str]:
    best: Optional[str] = None
    for dim in dimension_order:
        if best is None or scores.get(dim, 0.0) > scores.get(best, 0.0):
            best = dim
    return best


def select_archetype(
    policy: ArchetypePolicy,
    scores: Mapping[str, float],
    overall: float,
    dimension_order: Sequence[str],
) -> ArchetypeMatch:
    """First matching rule wins; otherwise the top dimension's archetype."""
    for rule in policy.rules:
        if rule.matches(dict(scores), overall):
            return ArchetypeMatch(rule.name, rule.description, rule_based=True)

    top = top_dimension(scores, dimension_order)
    name = policy.dimension_archetypes.get(top, policy.default) if top else policy.default
    if top:
        description = f"Your profile is anchored by your {top.replace('_', ' ')} score."
    else:
        description = ""
    return ArchetypeMatch(name, description, rule_based=False)


def strengths_and_gaps(
    scores: Mapping[str, float],
    dimension_order: Sequence[str],
    count: int = 3,
) -> tuple[list[str], list[str]]:
    """Top *count* dimensions, and bottom *count* weakest first."""
    position = {dim: i for i, dim in enumerate(dimension_order)}
    strengths = sorted(dimension_order, key=lambda d: (-scores.get(d, 0.0), position[d]))[:count]
    gaps = sorted(dimension_order, key=lambda d: (scores.get(d, 0.0), position[d]))[:count]
    return strengths, gaps


def market_readiness(overall: float) -> str:
    for threshold, text in _MARKET_READINESS:
        if overall >= threshold:
            return text
    return _MARKET_READINESS[-1][1]


def level_hints(config: AssessmentConfig, responses: Mapping[str, Response]) -> list[str]:
    """Level hints of the selected options, in question order."""
    hints: list[str] = []
    for module in config.modules:
        for question in module.questions:
            response = responses.get(question.id)
            if response is None:
                continue
            for value in sorted(response.selected_values):
                option = question.option(value)
                if option is not None and option.level_hint:
                    hints.append(option.level_hint)
    return hints


def infer_level(
    policy: LevelPolicy,
    scores: Mapping[str, float],
    overall: float,
    hints: Sequence[str] = (),
) -> str:
    """
    Current level from score floors, unless one answer hint recurs often
    enough to override them.  Hint ties go to the hint seen first.
    """
    level = policy.default
    for rule in policy.rules:
        if rule.matches(dict(scores), overall, policy.missing_score):
            level = rule.level
            break

    if hints:
        hint, count = Counter(hints).most_common(1)[0]
        if count >= policy.hint_min_count:
            level = hint
    return level
