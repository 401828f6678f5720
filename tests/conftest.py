"""Shared fixtures for prize board tests."""

import pytest

from prizeboards.schemas import Board, HostFee, PayoutRule, Score, Square
from prizeboards.store import MemoryBoardStore

ROW_DIGITS = [3, 7, 1, 9, 4, 0, 8, 2, 6, 5]
COL_DIGITS = [3, 7, 1, 9, 4, 0, 8, 2, 6, 5]


def quarters_rules():
    return [
        PayoutRule(event='Q1', percent=20),
        PayoutRule(event='HALF', percent=20),
        PayoutRule(event='Q3', percent=20),
        PayoutRule(event='FINAL', percent=40),
    ]


@pytest.fixture
def locked_board():
    """Locked board: $10 squares, 5% platform fee, no host fee."""
    return Board(
        id='b1',
        host_id='host-1',
        name='Big Game Board',
        event_name='Big Game',
        status='locked',
        square_price=1000,
        platform_fee_percent=5.0,
        host_fee=HostFee(),
        payout_rules=quarters_rules(),
        row_digits=list(ROW_DIGITS),
        col_digits=list(COL_DIGITS),
    )


@pytest.fixture
def row_zero_squares():
    """Row 0 fully paid (owners user0..user9), plus a reserved square at (9, 9)."""
    squares = [
        Square(id=f'sq-0-{c}', row_index=0, col_index=c, owner_id=f'user{c}', payment_status='paid')
        for c in range(10)
    ]
    squares.append(Square(id='sq-9-9', row_index=9, col_index=9, owner_id='zed', payment_status='reserved'))
    return squares


@pytest.fixture
def all_scores():
    return [
        Score(event='Q1', team_a_score=23, team_b_score=17),
        Score(event='HALF', team_a_score=15, team_b_score=25),
        Score(event='Q3', team_a_score=13, team_b_score=10),
        Score(event='FINAL', team_a_score=30, team_b_score=27),
    ]


@pytest.fixture
def store():
    return MemoryBoardStore()
