"""Pydantic schemas for board configuration and engine inputs."""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import (
    BOARD_STATUSES,
    DEFAULT_APP_URL,
    DEFAULT_FEE_PLAN,
    DEFAULT_FEE_PLANS,
    DEFAULT_FROM_EMAIL,
    DEFAULT_PAYOUT_RULES,
    DIGITS,
    GRID_SIZE,
    MAX_HOST_FEE_PERCENT,
    SQUARE_STATUSES,
)
from .errors import HostFeeLimitError


def _one_of(values) -> str:
    """Regex pattern matching exactly one of values."""
    return rf'^({"|".join(values)})$'


def check_host_fee_percent(value: float, max_percent: float = MAX_HOST_FEE_PERCENT) -> float:
    """Reject a percentage host fee above the cap."""
    if value > max_percent:
        raise HostFeeLimitError(f'Host fee must be between 0 and {max_percent:g}%, got {value:g}%')
    return value


class HostFee(BaseModel):
    """Host commission: a percentage of the pot, a flat amount in cents, or none."""

    type: str = Field(default='none', pattern=r'^(percentage|flat|none)$')
    value: float = Field(default=0, ge=0)

    @model_validator(mode='after')
    def validate_value(self):
        """Cap percentages and require whole cents for flat fees."""
        if self.type == 'percentage':
            check_host_fee_percent(self.value)
        elif self.type == 'flat' and self.value != int(self.value):
            raise ValueError(f'Flat host fee must be whole cents, got {self.value}')
        return self

    class Config:
        extra = 'forbid'


class PayoutRule(BaseModel):
    """Share of the prize pool paid for one scoring period."""

    event: str = Field(..., min_length=1, max_length=20)
    percent: float = Field(..., ge=0, le=100)

    class Config:
        extra = 'forbid'


class Square(BaseModel):
    """One cell of the 10x10 grid."""

    id: str = Field(..., min_length=1)
    row_index: int = Field(..., ge=0, lt=GRID_SIZE)
    col_index: int = Field(..., ge=0, lt=GRID_SIZE)
    owner_id: str | None = None
    payment_status: str = Field(default='available', pattern=_one_of(SQUARE_STATUSES))

    @property
    def is_paid(self) -> bool:
        return self.payment_status == 'paid'

    class Config:
        extra = 'forbid'


class Score(BaseModel):
    """Cumulative scores at the end of a period."""

    event: str = Field(..., min_length=1, max_length=20)
    team_a_score: int = Field(..., ge=0)
    team_b_score: int = Field(..., ge=0)

    class Config:
        extra = 'forbid'


class Board(BaseModel):
    """A hosted squares board."""

    id: str = Field(..., min_length=1)
    host_id: str = Field(..., min_length=1)
    name: str = ''
    event_name: str = ''
    team_a_name: str = 'Team A'
    team_b_name: str = 'Team B'
    status: str = Field(default='draft', pattern=_one_of(BOARD_STATUSES))
    square_price: int = Field(default=0, ge=0)
    total_pot: int | None = Field(default=None, ge=0)
    fee_plan: str = DEFAULT_FEE_PLAN
    platform_fee_percent: float | None = Field(default=None, ge=0, le=100)
    host_fee: HostFee = Field(default_factory=HostFee)
    payout_type: str = Field(default='quarters', pattern=_one_of(DEFAULT_PAYOUT_RULES))
    payout_rules: list[PayoutRule] = Field(
        default_factory=lambda: [PayoutRule(**r) for r in DEFAULT_PAYOUT_RULES['quarters']]
    )
    row_digits: list[int] | None = None
    col_digits: list[int] | None = None
    locked_at: str | None = None
    completed_at: str | None = None

    @field_validator('row_digits', 'col_digits')
    @classmethod
    def validate_digits(cls, v):
        """Assigned digits must be a permutation of 0-9."""
        if v is not None and sorted(v) != list(DIGITS):
            raise ValueError(f'Digits must be a permutation of 0-9, got {v}')
        return v

    @field_validator('payout_rules')
    @classmethod
    def validate_unique_events(cls, v):
        """One rule per scoring period."""
        events = [rule.event for rule in v]
        duplicates = sorted({e for e in events if events.count(e) > 1})
        if duplicates:
            raise ValueError(f'Duplicate payout events: {", ".join(duplicates)}')
        return v

    @property
    def is_locked(self) -> bool:
        return self.row_digits is not None and self.col_digits is not None

    def rule_for(self, event: str) -> PayoutRule | None:
        """Get the payout rule for a period, if any."""
        for rule in self.payout_rules:
            if rule.event == event:
                return rule
        return None

    def pot_for(self, paid_count: int) -> int:
        """Total pot: the running total if tracked, else price x paid squares."""
        if self.total_pot is not None:
            return self.total_pot
        return self.square_price * paid_count

    class Config:
        extra = 'forbid'


class BoardDocument(BaseModel):
    """Stored form of a board with its squares, scores and payouts."""

    board: Board
    squares: list[Square] = Field(default_factory=list)
    scores: list[Score] = Field(default_factory=list)
    payouts: list[dict[str, Any]] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


class PlatformConfig(BaseModel):
    """Platform-wide settings."""

    fee_plans: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_FEE_PLANS))
    default_fee_plan: str = DEFAULT_FEE_PLAN
    max_host_fee_percent: float = Field(default=MAX_HOST_FEE_PERCENT, ge=0, le=100)
    default_payout_rules: dict[str, list[PayoutRule]] = Field(
        default_factory=lambda: {
            k: [PayoutRule(**r) for r in rules] for k, rules in DEFAULT_PAYOUT_RULES.items()
        }
    )
    from_email: str = DEFAULT_FROM_EMAIL
    app_url: str = DEFAULT_APP_URL

    @field_validator('fee_plans')
    @classmethod
    def validate_fee_rates(cls, v):
        """Fee rates are fractions of the pot."""
        for plan, rate in v.items():
            if not 0 <= rate <= 1:
                raise ValueError(f'Invalid fee rate for {plan}: {rate}')
        return v

    @model_validator(mode='after')
    def validate_default_plan(self):
        if self.default_fee_plan not in self.fee_plans:
            raise ValueError(f'Unknown default fee plan: {self.default_fee_plan}')
        return self

    class Config:
        extra = 'forbid'
