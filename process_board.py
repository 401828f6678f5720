#!/usr/bin/env python3
"""
Prize Boards CLI

Locks boards and processes payouts for boards stored as JSON documents
in data/boards/{board_id}.json.

Usage:
    python process_board.py lock superbowl-2026 --host host-1
    python process_board.py payouts superbowl-2026 --host host-1 --contacts data/contacts.json
    python process_board.py summary superbowl-2026
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from prizeboards import (
    JsonBoardStore,
    LoggingNotifier,
    PrizeBoardError,
    Recipient,
    ResendNotifier,
    lock_board,
    process_payouts,
)
from prizeboards.config import get_config
from prizeboards.logging_config import setup_logging
from prizeboards.utils import format_cents, load_json
from prizeboards.validators import validate_board_ready


def load_contacts(contacts_path: Path | None) -> dict[str, Recipient]:
    """Load user id -> Recipient from a JSON file of {id: {email, name}}."""
    if contacts_path is None or not contacts_path.exists():
        return {}
    data = load_json(contacts_path)
    return {
        user_id: Recipient(email=info['email'], name=info.get('name', ''))
        for user_id, info in data.items()
        if info.get('email')
    }


def make_notifier():
    if os.environ.get('RESEND_API_KEY'):
        return ResendNotifier(from_email=get_config().from_email)
    return LoggingNotifier()


def print_summary(store: JsonBoardStore, board_id: str) -> None:
    board = store.get_board(board_id)
    squares = store.list_squares(board_id)
    scores = store.list_scores(board_id)
    paid = [s for s in squares if s.is_paid]

    print(f"{board.name or board.id} ({board.event_name})")
    print(f"  Status: {board.status}")
    print(f"  Paid squares: {len(paid)}/100")
    print(f"  Pot: {format_cents(board.pot_for(len(paid)))}")
    if board.is_locked:
        print(f"  Row digits: {board.row_digits}")
        print(f"  Col digits: {board.col_digits}")

    for score in scores:
        print(f"  {score.event}: {board.team_a_name} {score.team_a_score} - {board.team_b_name} {score.team_b_score}")

    if board.status == 'locked':
        errors, warnings = validate_board_ready(board, squares, scores)
        for message in errors:
            print(f"  ❌ {message}")
        for message in warnings:
            print(f"  ⚠️  {message}")

    for payout in store.list_payouts(board_id):
        if payout.has_winner:
            print(f"  🏆 {payout.label}: {payout.winner_id} wins {format_cents(payout.amount)} (square {payout.position})")
        else:
            print(f"  -  {payout.label}: no winner ({payout.reason})")


def main():
    parser = argparse.ArgumentParser(description="Prize Boards board processing")
    parser.add_argument(
        "--data-dir", "-d",
        default="data/boards",
        help="Directory holding board JSON files",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    lock_parser = subparsers.add_parser("lock", help="Lock a board and draw its digits")
    lock_parser.add_argument("board_id")
    lock_parser.add_argument("--host", required=True, help="Host user id")

    payouts_parser = subparsers.add_parser("payouts", help="Compute winners and complete a board")
    payouts_parser.add_argument("board_id")
    payouts_parser.add_argument("--host", required=True, help="Host user id")
    payouts_parser.add_argument(
        "--contacts",
        type=Path,
        default=None,
        help="JSON file of user id -> {email, name}; winners are emailed when given",
    )

    summary_parser = subparsers.add_parser("summary", help="Show a board")
    summary_parser.add_argument("board_id")

    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    store = JsonBoardStore(Path(args.data_dir))

    try:
        if args.command == "lock":
            board = lock_board(store, args.board_id, args.host)
            print(f"Board {board.id} locked")
            print(f"  Row digits: {board.row_digits}")
            print(f"  Col digits: {board.col_digits}")

        elif args.command == "payouts":
            recipients = load_contacts(args.contacts)
            notifier = make_notifier() if recipients else None
            result = process_payouts(store, args.board_id, args.host, notifier=notifier, recipients=recipients)

            breakdown = result.breakdown
            print("\n" + "="*60)
            print("PAYOUTS")
            print("="*60)
            print(f"  Total pot:    {format_cents(breakdown.total_pot)}")
            print(f"  Platform fee: {format_cents(breakdown.platform_fee)}")
            print(f"  Host fee:     {format_cents(breakdown.host_fee)}")
            print(f"  Prize pool:   {format_cents(breakdown.prize_pool)}")
            print()
            for payout in result.payouts:
                if payout.has_winner:
                    print(f"  🏆 {payout.label}: {payout.winner_id} wins {format_cents(payout.amount)}")
                else:
                    print(f"  -  {payout.label}: no winner, {format_cents(payout.unclaimed_amount)} unclaimed")
            print(f"\n{result.payouts_created} payouts created")

        elif args.command == "summary":
            print_summary(store, args.board_id)

    except PrizeBoardError as e:
        print(f"❌ {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
