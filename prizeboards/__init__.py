from .models import FeeBreakdown, PayoutRecord, PayoutResult, WinningPosition
from .schemas import Board, BoardDocument, HostFee, PayoutRule, PlatformConfig, Score, Square
from .payouts import (
    allocate_prize_amounts,
    compute_fee_breakdown,
    digit_index,
    resolve_payouts_for_board,
    resolve_winning_position,
)
from .digits import assign_digits, is_digit_permutation, shuffle_digits
from .lifecycle import (
    build_squares,
    can_transition,
    cancel_board,
    enter_score,
    lock_board,
    mark_square_paid,
    open_board,
    process_payouts,
)
from .store import BoardStore, JsonBoardStore, MemoryBoardStore
from .notifications import (
    LoggingNotifier,
    Notifier,
    Recipient,
    ResendNotifier,
    notify_board_locked,
    notify_winners,
)
from .errors import (
    BoardNotFoundError,
    BoardStateError,
    BoardValidationError,
    HostFeeLimitError,
    NotBoardHostError,
    NotificationError,
    PersistenceError,
    PrizeBoardError,
    StatusConflictError,
)

__all__ = [
    # Models
    'FeeBreakdown',
    'PayoutRecord',
    'PayoutResult',
    'WinningPosition',
    # Schemas
    'Board',
    'BoardDocument',
    'HostFee',
    'PayoutRule',
    'PlatformConfig',
    'Score',
    'Square',
    # Payout engine
    'allocate_prize_amounts',
    'compute_fee_breakdown',
    'digit_index',
    'resolve_payouts_for_board',
    'resolve_winning_position',
    # Digit assignment
    'assign_digits',
    'is_digit_permutation',
    'shuffle_digits',
    # Lifecycle
    'build_squares',
    'can_transition',
    'cancel_board',
    'enter_score',
    'lock_board',
    'mark_square_paid',
    'open_board',
    'process_payouts',
    # Storage
    'BoardStore',
    'JsonBoardStore',
    'MemoryBoardStore',
    # Notifications
    'LoggingNotifier',
    'Notifier',
    'Recipient',
    'ResendNotifier',
    'notify_board_locked',
    'notify_winners',
    # Errors
    'BoardNotFoundError',
    'BoardStateError',
    'BoardValidationError',
    'HostFeeLimitError',
    'NotBoardHostError',
    'NotificationError',
    'PersistenceError',
    'PrizeBoardError',
    'StatusConflictError',
]
