"""Data models for payout results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .constants import PAYOUT_PENDING


@dataclass(frozen=True)
class WinningPosition:
    """Winning digits for a period: last digit of each team's score."""
    row: int
    col: int


@dataclass
class FeeBreakdown:
    """How a pot splits into fees and the prize pool (minor units)."""
    total_pot: int
    platform_fee: int
    host_fee: int
    prize_pool: int
    platform_fee_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PayoutRecord:
    """Payout for one scoring period."""
    event: str
    label: str
    amount: int
    row_digit: int
    col_digit: int
    row_index: Optional[int] = None
    col_index: Optional[int] = None
    square_id: Optional[str] = None
    winner_id: Optional[str] = None
    status: str = PAYOUT_PENDING
    reason: Optional[str] = None
    unclaimed_amount: int = 0  # Prize a canceled period would have paid

    @property
    def has_winner(self) -> bool:
        return self.status == PAYOUT_PENDING and self.winner_id is not None

    @property
    def position(self) -> str:
        """Human readable square position, e.g. '3-7'."""
        return f'{self.row_digit}-{self.col_digit}'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PayoutResult:
    """Everything the engine produces for one board."""
    board_id: str
    breakdown: FeeBreakdown
    payouts: List[PayoutRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def winners(self) -> List[PayoutRecord]:
        return [p for p in self.payouts if p.has_winner]

    @property
    def payouts_created(self) -> int:
        return len(self.winners)

    @property
    def total_awarded(self) -> int:
        return sum(p.amount for p in self.winners)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'board_id': self.board_id,
            'breakdown': self.breakdown.to_dict(),
            'payouts': [p.to_dict() for p in self.payouts],
            'payouts_created': self.payouts_created,
            'total_awarded': self.total_awarded,
            'warnings': list(self.warnings),
        }
