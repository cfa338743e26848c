from dataclasses import dataclass


@dataclass
class PlayerStatLine:
    """
    One player's statistics for one match.

    Attributes:
        goals: Goals scored
        assists: Assists
        pass_accuracy: Completed pass percentage (0-100)
        dribbles_success: Successful dribbles
        tackles: Tackles made
        interceptions: Interceptions made
        key_passes: Passes leading to a shot
    """

    goals: int = 0
    assists: int = 0
    pass_accuracy: float = 0.0
    dribbles_success: int = 0
    tackles: int = 0
    interceptions: int = 0
    key_passes: int = 0

    @property
    def defensive_actions(self) -> int:
        return self.tackles + self.interceptions

    def to_dict(self) -> dict[str, float]:
        return {
            "goals": self.goals,
            "assists": self.assists,
            "pass_accuracy": self.pass_accuracy,
            "dribbles_success": self.dribbles_success,
            "tackles": self.tackles,
            "interceptions": self.interceptions,
            "key_passes": self.key_passes,
        }


@dataclass(frozen=True)
class ActivationCandidate:
    """A style triggered by a statline, before it is tied to a card row."""

    style_name: str
    points: int
    confidence: float
