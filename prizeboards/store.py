"""Board persistence.

Stores hold one BoardDocument per board. Status changes go through
transition(), a conditional update that only applies when the board is
still in the expected status, so a lock or payout run happens at most once
even when two callers race.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path
from typing import Any, Optional

from .errors import (
    BoardNotFoundError,
    BoardStateError,
    BoardValidationError,
    PersistenceError,
    StatusConflictError,
)
from .models import PayoutRecord
from .schemas import Board, BoardDocument, Score, Square
from .utils import load_json, save_json

logger = logging.getLogger('prizeboards.store')


class BoardStore(ABC):
    """Base class for board stores.

    Subclasses implement _load and _write; every read-modify-write runs
    under one lock.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def _load(self, board_id: str) -> Optional[BoardDocument]:
        """Load a stored document, or None if the board doesn't exist."""

    @abstractmethod
    def _write(self, doc: BoardDocument) -> None:
        """Persist a whole document. Raise PersistenceError on failure."""

    def _require(self, board_id: str) -> BoardDocument:
        doc = self._load(board_id)
        if doc is None:
            raise BoardNotFoundError(f'Board not found: {board_id}')
        return doc

    def exists(self, board_id: str) -> bool:
        return self._load(board_id) is not None

    def create_board(self, board: Board, squares: Optional[list[Square]] = None) -> Board:
        """Store a new board."""
        with self._lock:
            if self._load(board.id) is not None:
                raise BoardValidationError(f'Board already exists: {board.id}')
            doc = BoardDocument(board=board)
            for square in squares or []:
                _upsert_square(doc, square)
            self._write(doc)
        return board

    def get_board(self, board_id: str) -> Board:
        return self._require(board_id).board

    def save_board(self, board: Board) -> None:
        """Replace board settings. The status must not change here; use transition()."""
        with self._lock:
            doc = self._require(board.id)
            if doc.board.status != board.status:
                raise BoardValidationError(
                    f'Status changes must use transition() ({doc.board.status} -> {board.status})'
                )
            self._write(doc.model_copy(update={'board': board}))

    def list_squares(self, board_id: str) -> list[Square]:
        return list(self._require(board_id).squares)

    def save_square(self, board_id: str, square: Square) -> None:
        with self._lock:
            doc = self._require(board_id).model_copy(deep=True)
            _upsert_square(doc, square)
            self._write(doc)

    def purchase_square(self, board_id: str, square_id: str, owner_id: str) -> Square:
        """
        Mark a square paid and add its price to the running pot in one write.

        The board must still be open and the square unpaid when the write
        happens, so a purchase can't land on a locked board or take a
        square someone else already bought.

        Raises:
            BoardStateError: Board is not open
            BoardValidationError: Square doesn't exist
            StatusConflictError: Square is already paid for
        """
        with self._lock:
            doc = self._require(board_id).model_copy(deep=True)
            if doc.board.status != 'open':
                raise BoardStateError('Squares can only be bought while the board is open')
            square = next((s for s in doc.squares if s.id == square_id), None)
            if square is None:
                raise BoardValidationError(f'Square not found: {square_id}')
            if square.is_paid:
                raise StatusConflictError(f'Square {square_id} is already paid for')

            paid = square.model_copy(update={'owner_id': owner_id, 'payment_status': 'paid'})
            _upsert_square(doc, paid)
            if doc.board.total_pot is not None:
                doc.board = doc.board.model_copy(
                    update={'total_pot': doc.board.total_pot + doc.board.square_price}
                )
            self._write(doc)
        return paid

    def list_scores(self, board_id: str) -> list[Score]:
        return list(self._require(board_id).scores)

    def save_score(self, board_id: str, score: Score) -> None:
        """Insert or replace the score for score.event."""
        with self._lock:
            doc = self._require(board_id).model_copy(deep=True)
            doc.scores = [s for s in doc.scores if s.event != score.event] + [score]
            self._write(doc)

    def list_payouts(self, board_id: str) -> list[PayoutRecord]:
        return [PayoutRecord(**p) for p in self._require(board_id).payouts]

    def transition(self, board_id: str, expected: str, new: str, **changes: Any) -> bool:
        """
        Set status to new only if it is currently expected.

        Args:
            board_id: Board to update
            expected: Status the board must currently have
            new: Status to set
            **changes: Other board fields written in the same update

        Returns:
            True if the update applied, False if the status didn't match
        """
        with self._lock:
            doc = self._require(board_id)
            if doc.board.status != expected:
                logger.info(f'Board {board_id}: {expected} -> {new} skipped, status is {doc.board.status}')
                return False
            board = Board.model_validate({**doc.board.model_dump(), **changes, 'status': new})
            self._write(doc.model_copy(update={'board': board}))
        logger.info(f'Board {board_id}: {expected} -> {new}')
        return True

    def complete_with_payouts(
        self, board_id: str, records: list[PayoutRecord], completed_at: str | None = None
    ) -> bool:
        """
        Store payout records and mark the board completed in one write.

        Returns:
            False if the board was no longer locked (nothing written)
        """
        with self._lock:
            doc = self._require(board_id)
            if doc.board.status != 'locked':
                logger.info(f'Board {board_id}: payouts not stored, status is {doc.board.status}')
                return False
            board = doc.board.model_copy(update={'status': 'completed', 'completed_at': completed_at})
            self._write(
                doc.model_copy(update={'board': board, 'payouts': [asdict(r) for r in records]})
            )
        logger.info(f'Board {board_id}: stored {len(records)} payout records, status completed')
        return True


def _upsert_square(doc: BoardDocument, square: Square) -> None:
    for existing in doc.squares:
        if existing.id != square.id and (existing.row_index, existing.col_index) == (
            square.row_index,
            square.col_index,
        ):
            raise BoardValidationError(
                f'Square at row {square.row_index}, col {square.col_index} already exists ({existing.id})'
            )
    doc.squares = [s for s in doc.squares if s.id != square.id] + [square]


class MemoryBoardStore(BoardStore):
    """Board store kept in memory."""

    def __init__(self):
        super().__init__()
        self._docs: dict[str, BoardDocument] = {}

    def _load(self, board_id: str) -> Optional[BoardDocument]:
        doc = self._docs.get(board_id)
        return doc.model_copy(deep=True) if doc is not None else None

    def _write(self, doc: BoardDocument) -> None:
        self._docs[doc.board.id] = doc.model_copy(deep=True)


class JsonBoardStore(BoardStore):
    """Board store with one JSON file per board.

    The lock only covers this process; run one writer per data directory.
    """

    def __init__(self, data_dir: str | Path):
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, board_id: str) -> Path:
        if not board_id or '/' in board_id or board_id.startswith('.'):
            raise BoardValidationError(f'Invalid board id: {board_id!r}')
        return self.data_dir / f'{board_id}.json'

    def _load(self, board_id: str) -> Optional[BoardDocument]:
        path = self.path_for(board_id)
        if not path.exists():
            return None
        try:
            return load_json(path, schema=BoardDocument)
        except (OSError, ValueError) as e:
            raise PersistenceError(f'Failed to read board {board_id}: {e}') from e

    def _write(self, doc: BoardDocument) -> None:
        try:
            save_json(self.path_for(doc.board.id), doc)
        except (OSError, TypeError) as e:
            raise PersistenceError(f'Failed to save board {doc.board.id}: {e}') from e
