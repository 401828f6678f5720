"""Winner and board-locked notifications.

Notifications are sent after results are stored and never change them: the
batch helpers log failures and keep going.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import requests

from .constants import DEFAULT_FROM_EMAIL
from .errors import NotificationError
from .models import PayoutRecord
from .schemas import Board
from .utils import format_cents

logger = logging.getLogger('prizeboards.notifications')

RESEND_API_URL = 'https://api.resend.com/emails'


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str = ''

    @property
    def display_name(self) -> str:
        return self.name or self.email.split('@')[0]


def format_winner_subject(board: Board, record: PayoutRecord) -> str:
    return f'You won {format_cents(record.amount)} on {board.name or board.id}!'


def format_winner_body(board: Board, record: PayoutRecord, recipient: Recipient) -> str:
    return (
        f'<p>Congratulations {recipient.display_name}!</p>'
        f'<p>Your square {record.position} won the {record.label} payout on '
        f'<strong>{board.name or board.id}</strong>'
        f'{" (" + board.event_name + ")" if board.event_name else ""}.</p>'
        f'<p>Prize: <strong>{format_cents(record.amount)}</strong></p>'
    )


def format_locked_subject(board: Board) -> str:
    return f'{board.name or board.id} is locked - your numbers are in!'


def format_locked_body(board: Board, recipient: Recipient, board_url: str) -> str:
    return (
        f'<p>Hi {recipient.display_name},</p>'
        f'<p>The numbers for <strong>{board.name or board.id}</strong> have been drawn. '
        f'<a href="{board_url}">See your squares</a>.</p>'
    )


class Notifier(ABC):
    """Sends messages to players."""

    @abstractmethod
    def send(self, recipient: Recipient, subject: str, html: str) -> Optional[str]:
        """Send one message; return a provider message id if there is one."""

    def send_winner(self, board: Board, record: PayoutRecord, recipient: Recipient) -> Optional[str]:
        return self.send(recipient, format_winner_subject(board, record), format_winner_body(board, record, recipient))

    def send_board_locked(self, board: Board, recipient: Recipient, board_url: str) -> Optional[str]:
        return self.send(recipient, format_locked_subject(board), format_locked_body(board, recipient, board_url))


class LoggingNotifier(Notifier):
    """Writes messages to the log instead of sending them."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    def send(self, recipient: Recipient, subject: str, html: str) -> Optional[str]:
        logger.info(f'[notify] {recipient.email}: {subject}')
        self.sent.append((recipient.email, subject))
        return None


class ResendNotifier(Notifier):
    """Sends email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: str = DEFAULT_FROM_EMAIL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or os.environ.get('RESEND_API_KEY', '')
        if not self.api_key:
            raise NotificationError('RESEND_API_KEY is not set', status_code=500)
        self.from_email = from_email
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, recipient: Recipient, subject: str, html: str) -> Optional[str]:
        try:
            response = self.session.post(
                RESEND_API_URL,
                json={
                    'from': self.from_email,
                    'to': [recipient.email],
                    'subject': subject,
                    'html': html,
                },
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f'Failed to send email to {recipient.email}: {e}') from e
        return response.json().get('id')


def notify_winners(
    notifier: Notifier,
    board: Board,
    records: Sequence[PayoutRecord],
    recipients: Mapping[str, Recipient],
) -> tuple[int, int]:
    """
    Tell each winner what they won.

    Records without a winner are skipped, as are winners with no known
    recipient. Send failures are logged and counted, never raised.

    Returns:
        Tuple of (sent, failed)
    """
    sent = failed = 0
    for record in records:
        if not record.has_winner:
            continue
        recipient = recipients.get(record.winner_id)
        if recipient is None:
            logger.warning(f'No contact for winner {record.winner_id} ({record.event})')
            failed += 1
            continue
        try:
            notifier.send_winner(board, record, recipient)
            sent += 1
        except Exception as e:
            logger.error(f'Failed to notify {record.winner_id} for {record.event}: {e}')
            failed += 1

    logger.info(f'Winner notifications for {board.id}: {sent} sent, {failed} failed')
    return sent, failed


def notify_board_locked(
    notifier: Notifier,
    board: Board,
    recipients: Sequence[Recipient],
    board_url: str,
) -> tuple[int, int]:
    """Tell every player the digits are drawn. Returns (sent, failed)."""
    sent = failed = 0
    for recipient in recipients:
        try:
            notifier.send_board_locked(board, recipient, board_url)
            sent += 1
        except Exception as e:
            logger.error(f'Failed to send board locked email to {recipient.email}: {e}')
            failed += 1

    logger.info(f'Board locked emails for {board.id}: {sent} sent, {failed} failed')
    return sent, failed
