"""Sanity checks for board setup and payout results.

These never raise: each returns a list of messages (empty if all is well)
so callers can decide whether to block or just warn.
"""

from collections import Counter
from typing import Sequence

from .constants import GRID_SIZE
from .models import FeeBreakdown, PayoutResult
from .schemas import Board, PayoutRule, Score, Square


def validate_payout_rules(rules: Sequence[PayoutRule]) -> list[str]:
    """
    Check payout rules.

    Checks:
    - At least one rule
    - No duplicate events
    - No zero shares
    - Shares total 100%
    """
    warnings = []
    if not rules:
        return ['No payout rules configured']

    counts = Counter(rule.event for rule in rules)
    duplicates = sorted(event for event, n in counts.items() if n > 1)
    if duplicates:
        warnings.append(f'Duplicate payout events: {", ".join(duplicates)}')

    for rule in rules:
        if rule.percent <= 0:
            warnings.append(f'{rule.event} pays {rule.percent:g}% of the pool')

    total = sum(rule.percent for rule in rules)
    if abs(total - 100) > 1e-9:
        warnings.append(f'Payout rules total {total:g}% (expected 100%)')

    return warnings


def validate_squares(squares: Sequence[Square]) -> list[str]:
    """
    Check squares for a board.

    Checks:
    - Each cell appears at most once
    - Indexes in range
    - Paid squares have an owner
    """
    errors = []

    positions = Counter((s.row_index, s.col_index) for s in squares)
    for (row, col), n in sorted(positions.items()):
        if n > 1:
            errors.append(f'Square at row {row}, col {col} appears {n} times')

    for square in squares:
        if not (0 <= square.row_index < GRID_SIZE and 0 <= square.col_index < GRID_SIZE):
            errors.append(f'Square {square.id} is off the grid ({square.row_index}, {square.col_index})')
        if square.is_paid and not square.owner_id:
            errors.append(f'Square {square.id} is paid but has no owner')

    return errors


def validate_scores(board: Board, scores: Sequence[Score]) -> list[str]:
    """Check for repeated periods and scores for periods the board doesn't pay."""
    errors = []
    counts = Counter(score.event for score in scores)
    for event, n in counts.items():
        if n > 1:
            errors.append(f'{event} has {n} scores')
        if board.rule_for(event) is None:
            errors.append(f'{event} has a score but no payout rule')
    return errors


def validate_fee_breakdown(breakdown: FeeBreakdown) -> list[str]:
    """
    Check a fee breakdown is consistent.

    Each fee is rounded separately, so parts may miss the pot by one cent;
    anything more is reported.
    """
    warnings = []
    for name in ('platform_fee', 'host_fee', 'prize_pool'):
        if getattr(breakdown, name) < 0:
            warnings.append(f'{name} is negative ({getattr(breakdown, name)})')

    fees = breakdown.platform_fee + breakdown.host_fee
    if fees > breakdown.total_pot:
        warnings.append(f'Fees ({fees}) exceed pot ({breakdown.total_pot})')

    drift = abs(breakdown.total_pot - fees - breakdown.prize_pool)
    if drift > 1:
        warnings.append(f'Breakdown misses the pot by {drift} cents')

    return warnings


def validate_payout_result(result: PayoutResult) -> list[str]:
    """Check that awarded prizes don't exceed the prize pool (beyond rounding)."""
    warnings = validate_fee_breakdown(result.breakdown)
    slack = len(result.payouts)
    if result.total_awarded > result.breakdown.prize_pool + slack:
        warnings.append(
            f'Awarded {result.total_awarded} exceeds prize pool {result.breakdown.prize_pool}'
        )
    return warnings


def validate_board_ready(
    board: Board, squares: Sequence[Square], scores: Sequence[Score]
) -> tuple[list[str], list[str]]:
    """
    Check a board before processing payouts.

    Returns:
        Tuple of (errors, warnings)
        - errors: issues that should stop processing
        - warnings: issues to review
    """
    errors: list[str] = []
    warnings: list[str] = []

    if board.status != 'locked':
        errors.append(f'Board is {board.status}, not locked')
    if not board.is_locked:
        errors.append('Digits have not been assigned')

    errors.extend(validate_squares(squares))
    if not any(s.is_paid for s in squares):
        errors.append('No paid squares')

    if not scores:
        errors.append('No scores entered')
    errors.extend(validate_scores(board, scores))

    warnings.extend(validate_payout_rules(board.payout_rules))

    scored = {s.event for s in scores}
    missing = [rule.event for rule in board.payout_rules if rule.event not in scored]
    if missing:
        warnings.append(f'No score yet for: {", ".join(missing)}')

    return errors, warnings
