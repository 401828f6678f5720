"""Board lifecycle: open, lock, score entry and payout processing.

States move draft -> open -> locked -> completed, with canceled reachable
from any state before completed. Each step checks the caller and current
status, then applies its change with a conditional transition, so repeating
a step (or racing another caller) is rejected rather than redone.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from .config import get_config, get_fee_rate
from .constants import BOARD_TRANSITIONS, GRID_SIZE
from .digits import assign_digits
from .errors import (
    BoardStateError,
    BoardValidationError,
    NotBoardHostError,
    StatusConflictError,
)
from .models import PayoutResult
from .notifications import Notifier, Recipient, notify_board_locked, notify_winners
from .payouts import resolve_payouts_for_board
from .schemas import Board, PlatformConfig, Score, Square
from .store import BoardStore

logger = logging.getLogger('prizeboards.lifecycle')


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def can_transition(current: str, target: str) -> bool:
    """Check whether a board may move from current to target status."""
    return target in BOARD_TRANSITIONS.get(current, ())


def _require_host(board: Board, host_id: str, action: str) -> None:
    if board.host_id != host_id:
        raise NotBoardHostError(f'Only the host can {action}')


def _transition(store: BoardStore, board: Board, target: str, **changes) -> None:
    if not can_transition(board.status, target):
        raise BoardStateError(f'Cannot move board from {board.status} to {target}')
    if not store.transition(board.id, board.status, target, **changes):
        raise StatusConflictError(f'Board {board.id} changed status before it could be {target}')


def build_squares(board_id: str) -> list[Square]:
    """All 100 squares of a new board, unclaimed."""
    return [
        Square(id=f'{board_id}-{row}-{col}', row_index=row, col_index=col)
        for row in range(GRID_SIZE)
        for col in range(GRID_SIZE)
    ]


def open_board(
    store: BoardStore,
    board_id: str,
    host_id: str,
    config: Optional[PlatformConfig] = None,
) -> Board:
    """
    Open a draft board for sales.

    Snapshots the host plan's fee rate onto the board so later rate
    changes never affect it.

    Raises:
        NotBoardHostError, BoardStateError, BoardValidationError, StatusConflictError
    """
    config = config or get_config()
    board = store.get_board(board_id)
    _require_host(board, host_id, 'open the board')

    max_percent = config.max_host_fee_percent
    if board.host_fee.type == 'percentage' and board.host_fee.value > max_percent:
        raise BoardValidationError(f'Host fee must be between 0 and {max_percent:g}%')
    if not board.payout_rules:
        raise BoardValidationError('Board has no payout rules')

    try:
        rate = get_fee_rate(board.fee_plan, config)
    except KeyError as e:
        raise BoardValidationError(str(e.args[0])) from e

    _transition(store, board, 'open', platform_fee_percent=round(rate * 100, 4))
    return store.get_board(board_id)


def mark_square_paid(store: BoardStore, board_id: str, square_id: str, owner_id: str) -> Square:
    """
    Record a completed square purchase.

    Adds the square price to the running pot when the board tracks one.
    The store re-checks the board status and the square in the same write,
    so a purchase racing a lock (or another buyer) is rejected.

    Raises:
        BoardStateError: Board is not open
        BoardValidationError: Square doesn't exist
        StatusConflictError: Square is already paid for
    """
    board = store.get_board(board_id)
    if board.status != 'open':
        raise BoardStateError('Squares can only be bought while the board is open')

    paid = store.purchase_square(board_id, square_id, owner_id)
    logger.info(f'Square {square_id} on {board_id} marked as paid')
    return paid


def lock_board(
    store: BoardStore,
    board_id: str,
    host_id: str,
    rng: Optional[random.Random] = None,
    notifier: Optional[Notifier] = None,
    recipients: Sequence[Recipient] = (),
    board_url: Optional[str] = None,
) -> Board:
    """
    Close sales and draw the row and column digits.

    Digits are drawn here once and stored with the status change in a single
    conditional update; a second lock attempt fails.

    Raises:
        NotBoardHostError: Caller is not the host
        BoardStateError: Board is not open
        StatusConflictError: Another caller locked or canceled it first
    """
    board = store.get_board(board_id)
    _require_host(board, host_id, 'lock the board')
    if board.status != 'open':
        raise BoardStateError('Only open boards can be locked')

    row_digits, col_digits = assign_digits(rng)
    _transition(
        store,
        board,
        'locked',
        row_digits=row_digits,
        col_digits=col_digits,
        locked_at=_now(),
    )
    locked = store.get_board(board_id)
    logger.info(f'Board {board_id} locked: rows {row_digits}, cols {col_digits}')

    if notifier is not None and recipients:
        url = board_url or f'{get_config().app_url}/board/{board_id}'
        notify_board_locked(notifier, locked, recipients, url)

    return locked


def cancel_board(store: BoardStore, board_id: str, host_id: str) -> Board:
    """Cancel a board that hasn't completed."""
    board = store.get_board(board_id)
    _require_host(board, host_id, 'cancel the board')
    if board.status == 'completed':
        raise BoardStateError('Completed boards cannot be canceled', status_code=409)
    _transition(store, board, 'canceled')
    return store.get_board(board_id)


def enter_score(store: BoardStore, board_id: str, host_id: str, score: Score) -> None:
    """Save (or correct) the score for one period of a locked board."""
    board = store.get_board(board_id)
    _require_host(board, host_id, 'enter scores')
    if board.status != 'locked':
        raise BoardStateError('Board must be locked to enter scores')
    if board.rule_for(score.event) is None:
        raise BoardValidationError(f'Board has no payout for {score.event}')
    store.save_score(board_id, score)


def process_payouts(
    store: BoardStore,
    board_id: str,
    host_id: str,
    notifier: Optional[Notifier] = None,
    recipients: Optional[Mapping[str, Recipient]] = None,
    config: Optional[PlatformConfig] = None,
) -> PayoutResult:
    """
    Compute winners for a locked board, store them and complete the board.

    Payout records and the completed status are written together; if the
    write fails the board stays locked. Winners are notified afterwards and
    notification failures are only logged.

    Args:
        store: Board store
        board_id: Board to process
        host_id: Calling user, must be the host
        notifier: Optional notifier for winners
        recipients: Winner id -> Recipient, used with notifier
        config: Platform config (fee rate fallback for boards without a snapshot)

    Returns:
        PayoutResult; payouts_created counts periods with a winner

    Raises:
        NotBoardHostError: Caller is not the host
        BoardStateError: Board already completed (409) or not locked
        BoardValidationError: No scores or no paid squares
        StatusConflictError: Another run completed the board first
        PersistenceError: Storing results failed
    """
    board = store.get_board(board_id)
    _require_host(board, host_id, 'process payouts')
    if board.status == 'completed':
        raise BoardStateError('Payouts have already been processed for this board', status_code=409)
    if board.status != 'locked':
        raise BoardStateError('Board must be locked to process payouts')

    scores = store.list_scores(board_id)
    if not scores:
        raise BoardValidationError('No scores entered')

    squares = store.list_squares(board_id)
    if not any(s.is_paid for s in squares):
        raise BoardValidationError('No paid squares found')

    result = resolve_payouts_for_board(board, squares, scores, config=config)

    if not store.complete_with_payouts(board_id, result.payouts, completed_at=_now()):
        raise StatusConflictError(f'Board {board_id} was completed by another request')

    logger.info(
        f'Board {board_id}: {result.payouts_created} payouts created, '
        f'{len(result.payouts) - result.payouts_created} canceled'
    )

    if notifier is not None and recipients:
        notify_winners(notifier, store.get_board(board_id), result.payouts, recipients)

    return result
