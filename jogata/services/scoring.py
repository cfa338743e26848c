"""
Performance Scorer: statline to style activations.

Each rule is evaluated independently; one performance can trigger several
styles. Thresholds are strict. A statline matching no rule yields an empty
list.

RULES:
- goals > 0                               -> Clinical Finisher, goals x 10, 0.9
- pass accuracy > 85 and dribbles > 3     -> Speedster, 5, 0.7
- tackles + interceptions > 5             -> Ball Winner, (t + i) x 2, 0.8
- assists > 0 or key passes > 3           -> Playmaker, assists x 8 + key passes x 2, 0.85
"""

from jogata.models.performance import ActivationCandidate, PlayerStatLine

CLINICAL_FINISHER = "Clinical Finisher"
SPEEDSTER = "Speedster"
BALL_WINNER = "Ball Winner"
PLAYMAKER = "Playmaker"

POINTS_PER_GOAL = 10
SPEEDSTER_POINTS = 5
POINTS_PER_DEFENSIVE_ACTION = 2
POINTS_PER_ASSIST = 8
POINTS_PER_KEY_PASS = 2

SPEEDSTER_MIN_PASS_ACCURACY = 85
SPEEDSTER_MIN_DRIBBLES = 3
BALL_WINNER_MIN_ACTIONS = 5
PLAYMAKER_MIN_KEY_PASSES = 3


def score_performance(stats: PlayerStatLine) -> list[ActivationCandidate]:
    """Apply every scoring rule to one statline."""
    candidates: list[ActivationCandidate] = []

    if stats.goals > 0:
        candidates.append(
            ActivationCandidate(CLINICAL_FINISHER, stats.goals * POINTS_PER_GOAL, 0.9)
        )

    if (
        stats.pass_accuracy > SPEEDSTER_MIN_PASS_ACCURACY
        and stats.dribbles_success > SPEEDSTER_MIN_DRIBBLES
    ):
        candidates.append(ActivationCandidate(SPEEDSTER, SPEEDSTER_POINTS, 0.7))

    defensive = stats.defensive_actions
    if defensive > BALL_WINNER_MIN_ACTIONS:
        candidates.append(
            ActivationCandidate(BALL_WINNER, defensive * POINTS_PER_DEFENSIVE_ACTION, 0.8)
        )

    if stats.assists > 0 or stats.key_passes > PLAYMAKER_MIN_KEY_PASSES:
        points = stats.assists * POINTS_PER_ASSIST + stats.key_passes * POINTS_PER_KEY_PASS
        candidates.append(ActivationCandidate(PLAYMAKER, points, 0.85))

    return candidates


def style_scores(candidates: list[ActivationCandidate]) -> dict[str, dict[str, float]]:
    """JSON-ready summary stored alongside a performance."""
    return {c.style_name: {"points": c.points, "confidence": c.confidence} for c in candidates}
