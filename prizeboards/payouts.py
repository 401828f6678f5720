"""Payout computation for locked boards.

Pure functions: no randomness and no I/O beyond the cached platform
config. Given a board, its squares and the period scores, produce the fee
breakdown and one payout record per scored period.

Rules:
    - Platform fee: pot x plan rate, rounded half-up
    - Host fee: pot x percentage / 100 rounded half-up, or a flat amount
    - Prize pool: pot - platform fee - host fee, never negative
    - Period prize: prize pool x rule percent / 100, rounded half-up
    - Winning square: row digit = team A score mod 10,
      column digit = team B score mod 10
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from .config import get_fee_rate, get_max_host_fee_percent
from .constants import EVENT_LABELS, MAX_HOST_FEE_PERCENT, PAYOUT_CANCELED, PAYOUT_PENDING
from .errors import BoardValidationError
from .models import FeeBreakdown, PayoutRecord, PayoutResult, WinningPosition
from .schemas import Board, HostFee, PayoutRule, PlatformConfig, Score, Square
from .utils import round_half_up

logger = logging.getLogger('prizeboards.payouts')

REASON_DIGITS_UNASSIGNED = 'digits_unassigned'
REASON_UNCLAIMED_SQUARE = 'unclaimed_square'


def _fee_breakdown(
    total_pot: int,
    platform_fee_rate: float,
    host_fee: HostFee | Mapping[str, Any] | None,
    max_host_fee_percent: float = MAX_HOST_FEE_PERCENT,
) -> tuple[FeeBreakdown, list[str]]:
    if total_pot < 0:
        raise ValueError(f'Total pot must be non-negative, got {total_pot}')
    if not 0 <= platform_fee_rate <= 1:
        raise ValueError(f'Platform fee rate must be between 0 and 1, got {platform_fee_rate}')

    warnings = []
    if isinstance(host_fee, Mapping):
        host_fee = HostFee(**host_fee)

    pot = Decimal(total_pot)
    platform_fee = round_half_up(pot * Decimal(str(platform_fee_rate)))

    host_amount = 0
    if host_fee is not None and host_fee.type == 'percentage' and host_fee.value:
        percent = host_fee.value
        if percent > max_host_fee_percent:
            warnings.append(f'Host fee {percent:g}% above {max_host_fee_percent:g}% cap, clamped')
            percent = max_host_fee_percent
        host_amount = round_half_up(pot * Decimal(str(percent)) / 100)
    elif host_fee is not None and host_fee.type == 'flat' and host_fee.value:
        host_amount = int(host_fee.value)

    prize_pool = total_pot - platform_fee - host_amount
    if prize_pool < 0:
        warnings.append(
            f'Fees ({platform_fee + host_amount}) exceed pot ({total_pot}), prize pool set to 0'
        )
        host_amount = total_pot - platform_fee
        prize_pool = 0

    for message in warnings:
        logger.warning(message)

    breakdown = FeeBreakdown(
        total_pot=total_pot,
        platform_fee=platform_fee,
        host_fee=host_amount,
        prize_pool=prize_pool,
        platform_fee_rate=platform_fee_rate,
    )
    return breakdown, warnings


def compute_fee_breakdown(
    total_pot: int,
    platform_fee_rate: float,
    host_fee: HostFee | Mapping[str, Any] | None = None,
    max_host_fee_percent: float = MAX_HOST_FEE_PERCENT,
) -> FeeBreakdown:
    """
    Split a pot into platform fee, host fee and prize pool.

    Each fee is rounded half-up on its own, so the three parts may differ
    from the pot by one cent. When fees would exceed the pot, the host fee
    is reduced and the prize pool is 0.

    Args:
        total_pot: Pot in cents (non-negative)
        platform_fee_rate: Fraction of the pot kept by the platform (0-1)
        host_fee: HostFee, an equivalent dict, or None for no host fee
        max_host_fee_percent: Cap applied to percentage host fees

    Returns:
        FeeBreakdown in cents

    Raises:
        ValueError: If the pot is negative or the rate is outside 0-1
    """
    breakdown, _ = _fee_breakdown(total_pot, platform_fee_rate, host_fee, max_host_fee_percent)
    return breakdown


def _rule_items(payout_rules: Iterable[PayoutRule | Mapping[str, Any]] | Mapping[str, float]):
    # Legacy boards store rules as {event: percent}
    if isinstance(payout_rules, Mapping):
        yield from payout_rules.items()
        return
    for rule in payout_rules:
        if isinstance(rule, Mapping):
            yield rule['event'], rule['percent']
        else:
            yield rule.event, rule.percent


def allocate_prize_amounts(
    prize_pool: int,
    payout_rules: Iterable[PayoutRule | Mapping[str, Any]] | Mapping[str, float],
) -> dict[str, int]:
    """
    Compute the prize for each scoring period.

    Percents are not required to total 100; the sum of prizes may differ
    from the pool by rounding.

    Args:
        prize_pool: Prize pool in cents
        payout_rules: PayoutRule list, [{'event', 'percent'}] dicts, or {event: percent}

    Returns:
        Dict of event key -> prize in cents, in rule order

    Example:
        allocate_prize_amounts(1000, [{'event': 'Q1', 'percent': 20},
                                      {'event': 'FINAL', 'percent': 80}])
        -> {'Q1': 200, 'FINAL': 800}
    """
    pool = Decimal(prize_pool)
    return {
        event: round_half_up(pool * Decimal(str(percent)) / 100)
        for event, percent in _rule_items(payout_rules)
    }


def resolve_winning_position(team_a_score: int, team_b_score: int) -> WinningPosition:
    """Last digit of team A's score picks the row, team B's the column."""
    return WinningPosition(row=team_a_score % 10, col=team_b_score % 10)


def digit_index(digits: Optional[Sequence[int]], digit: int) -> Optional[int]:
    """Grid index showing a digit, or None if digits are missing or lack it."""
    if not digits:
        return None
    try:
        return list(digits).index(digit)
    except ValueError:
        return None


def _coerce(model, value):
    return value if isinstance(value, model) else model.model_validate(value)


def _paid_square_map(squares: Sequence[Square]) -> dict[tuple[int, int], Square]:
    square_map: dict[tuple[int, int], Square] = {}
    for square in squares:
        if not square.is_paid:
            continue
        key = (square.row_index, square.col_index)
        if key in square_map:
            raise BoardValidationError(
                f'Duplicate square at row {key[0]}, col {key[1]} '
                f'({square_map[key].id} and {square.id})'
            )
        square_map[key] = square
    return square_map


def _check_unique_scores(scores: Sequence[Score]) -> None:
    seen = set()
    for score in scores:
        if score.event in seen:
            raise BoardValidationError(f'More than one score entered for {score.event}')
        seen.add(score.event)


def board_fee_rate(board: Board, config: PlatformConfig | None = None) -> float:
    """
    Fee rate snapshotted on the board, else the current rate for its plan.

    Raises:
        BoardValidationError: No snapshot and the plan is not configured
    """
    if board.platform_fee_percent is not None:
        return board.platform_fee_percent / 100
    logger.warning(f'Board {board.id} has no fee snapshot, using current {board.fee_plan} rate')
    try:
        return get_fee_rate(board.fee_plan, config)
    except KeyError as e:
        raise BoardValidationError(str(e.args[0])) from e


def resolve_payouts_for_board(
    board: Board | Mapping[str, Any],
    squares: Sequence[Square | Mapping[str, Any]],
    scores: Sequence[Score | Mapping[str, Any]],
    config: PlatformConfig | None = None,
) -> PayoutResult:
    """
    Compute fees and per-period payouts for a board.

    Periods that cannot be paid (digits not assigned, winning square unsold
    or without an owner) produce a canceled record with no winner and a zero
    amount; the prize it would have paid is kept in unclaimed_amount.
    Scores for events without a payout rule are skipped.

    Args:
        board: Board configuration, including digit assignment
        squares: Board squares; only paid squares can win
        scores: One score per period
        config: Platform config for the host fee cap, and the fee rate when
            the board has no snapshot. Defaults to get_config()

    Returns:
        PayoutResult with the fee breakdown and one record per paid period

    Raises:
        BoardValidationError: Two paid squares share a cell, an event has
            more than one score, or the board has no fee snapshot and an
            unknown plan
    """
    board = _coerce(Board, board)
    squares = [_coerce(Square, s) for s in squares]
    scores = [_coerce(Score, s) for s in scores]

    square_map = _paid_square_map(squares)
    _check_unique_scores(scores)

    total_pot = board.pot_for(len(square_map))
    breakdown, warnings = _fee_breakdown(
        total_pot,
        board_fee_rate(board, config),
        board.host_fee,
        get_max_host_fee_percent(config),
    )
    prize_amounts = allocate_prize_amounts(breakdown.prize_pool, board.payout_rules)

    result = PayoutResult(board_id=board.id, breakdown=breakdown, warnings=warnings)

    for score in scores:
        if score.event not in prize_amounts:
            logger.debug(f'No payout rule for {score.event} on board {board.id}')
            continue

        prize = prize_amounts[score.event]
        winning = resolve_winning_position(score.team_a_score, score.team_b_score)
        record = PayoutRecord(
            event=score.event,
            label=EVENT_LABELS.get(score.event, score.event),
            amount=prize,
            row_digit=winning.row,
            col_digit=winning.col,
        )

        row_index = digit_index(board.row_digits, winning.row)
        col_index = digit_index(board.col_digits, winning.col)
        if row_index is None or col_index is None:
            message = f'{score.event}: could not find position for {winning.row}-{winning.col}'
            logger.warning(f'Board {board.id} {message}')
            result.warnings.append(message)
            _cancel(record, REASON_DIGITS_UNASSIGNED)
            result.payouts.append(record)
            continue

        record.row_index = row_index
        record.col_index = col_index
        square = square_map.get((row_index, col_index))

        if square is None or not square.owner_id:
            logger.info(f'Board {board.id} {score.event}: no owner for winning square {row_index}-{col_index}')
            if square is not None:
                record.square_id = square.id
            _cancel(record, REASON_UNCLAIMED_SQUARE)
        else:
            record.square_id = square.id
            record.winner_id = square.owner_id
            record.status = PAYOUT_PENDING

        result.payouts.append(record)

    return result


def _cancel(record: PayoutRecord, reason: str) -> None:
    record.unclaimed_amount = record.amount
    record.amount = 0
    record.winner_id = None
    record.status = PAYOUT_CANCELED
    record.reason = reason
