"""Unit tests for the payout engine."""

import pytest

from prizeboards.errors import BoardValidationError
from prizeboards.payouts import (
    allocate_prize_amounts,
    compute_fee_breakdown,
    digit_index,
    resolve_payouts_for_board,
    resolve_winning_position,
)
from prizeboards.schemas import HostFee, PlatformConfig, Score, Square

from .conftest import ROW_DIGITS


class TestFeeBreakdown:
    """Tests for platform and host fee calculation."""

    def test_platform_fee_only(self):
        """Test pay-as-you-go plan: 7.5% of a $100 pot."""
        breakdown = compute_fee_breakdown(10000, 0.075)
        assert breakdown.platform_fee == 750
        assert breakdown.host_fee == 0
        assert breakdown.prize_pool == 9250
        assert breakdown.platform_fee_rate == 0.075

    def test_percentage_host_fee(self):
        """Test 10% host fee on top of the platform fee."""
        breakdown = compute_fee_breakdown(10000, 0.075, HostFee(type='percentage', value=10))
        assert breakdown.host_fee == 1000
        assert breakdown.prize_pool == 8250

    def test_flat_host_fee(self):
        """Test flat $5 host fee."""
        breakdown = compute_fee_breakdown(10000, 0.05, HostFee(type='flat', value=500))
        assert breakdown.platform_fee == 500
        assert breakdown.host_fee == 500
        assert breakdown.prize_pool == 9000

    def test_host_fee_as_dict(self):
        """Test host fee given as a plain dict."""
        breakdown = compute_fee_breakdown(10000, 0.03, {'type': 'percentage', 'value': 5})
        assert breakdown.platform_fee == 300
        assert breakdown.host_fee == 500
        assert breakdown.prize_pool == 9200

    def test_no_host_fee_type(self):
        """Test explicit 'none' host fee."""
        breakdown = compute_fee_breakdown(10000, 0.03, HostFee(type='none', value=0))
        assert breakdown.host_fee == 0

    def test_rounds_half_up(self):
        """Test 0.5 cent rounds up (built-in round would give 0)."""
        breakdown = compute_fee_breakdown(10, 0.05)
        assert breakdown.platform_fee == 1
        assert breakdown.prize_pool == 9

    def test_rounding_uneven_pot(self):
        """Test 7.5% of 333 cents = 24.975 -> 25."""
        breakdown = compute_fee_breakdown(333, 0.075)
        assert breakdown.platform_fee == 25
        assert breakdown.prize_pool == 308

    def test_fees_exceeding_pot_clamp_to_zero(self):
        """Test prize pool never goes negative when fees exceed the pot."""
        breakdown = compute_fee_breakdown(1000, 0.5, HostFee(type='flat', value=800))
        assert breakdown.platform_fee == 500
        assert breakdown.host_fee == 500
        assert breakdown.prize_pool == 0

    def test_percentage_over_cap_is_clamped(self):
        """Test defensive cap on host percentages that bypassed validation."""
        host_fee = HostFee.model_construct(type='percentage', value=30)
        breakdown = compute_fee_breakdown(1000, 0.0, host_fee)
        assert breakdown.host_fee == 200
        assert breakdown.prize_pool == 800

    def test_zero_pot(self):
        """Test empty pot produces zero everything."""
        breakdown = compute_fee_breakdown(0, 0.075, HostFee(type='percentage', value=10))
        assert (breakdown.platform_fee, breakdown.host_fee, breakdown.prize_pool) == (0, 0, 0)

    @pytest.mark.parametrize('total_pot', [0, 1, 7, 99, 1000, 12345, 100000])
    @pytest.mark.parametrize('rate', [0, 0.03, 0.05, 0.075, 0.5, 1])
    def test_bounds(self, total_pot, rate):
        """Test platform fee never exceeds the pot and the pool is never negative."""
        breakdown = compute_fee_breakdown(total_pot, rate, HostFee(type='percentage', value=20))
        assert 0 <= breakdown.platform_fee <= total_pot
        assert breakdown.prize_pool >= 0
        assert breakdown.platform_fee + breakdown.host_fee <= total_pot

    def test_negative_pot_rejected(self):
        with pytest.raises(ValueError):
            compute_fee_breakdown(-1, 0.05)

    def test_rate_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            compute_fee_breakdown(1000, 1.5)


class TestPrizeAllocation:
    """Tests for splitting the prize pool across periods."""

    def test_quarters_split(self):
        """Test 20/20/20/40 on a round pool sums exactly."""
        rules = [
            {'event': 'Q1', 'percent': 20},
            {'event': 'HALF', 'percent': 20},
            {'event': 'Q3', 'percent': 20},
            {'event': 'FINAL', 'percent': 40},
        ]
        prizes = allocate_prize_amounts(1000, rules)
        assert prizes == {'Q1': 200, 'HALF': 200, 'Q3': 200, 'FINAL': 400}
        assert sum(prizes.values()) == 1000

    def test_preserves_rule_order(self):
        prizes = allocate_prize_amounts(1000, [{'event': 'FINAL', 'percent': 60}, {'event': 'Q1', 'percent': 40}])
        assert list(prizes) == ['FINAL', 'Q1']

    def test_legacy_mapping_rules(self):
        """Test older {event: percent} rule shape."""
        prizes = allocate_prize_amounts(9250, {'q1': 20, 'final': 80})
        assert prizes == {'q1': 1850, 'final': 7400}

    def test_rounding_slack_allowed(self):
        """Test independent rounding can overshoot the pool by a cent."""
        rules = [
            {'event': 'Q1', 'percent': 20},
            {'event': 'HALF', 'percent': 20},
            {'event': 'Q3', 'percent': 20},
            {'event': 'FINAL', 'percent': 40},
        ]
        prizes = allocate_prize_amounts(1003, rules)
        assert prizes == {'Q1': 201, 'HALF': 201, 'Q3': 201, 'FINAL': 401}
        assert sum(prizes.values()) == 1004

    def test_rules_not_summing_to_100(self):
        """Test rules under 100% leave part of the pool unallocated."""
        prizes = allocate_prize_amounts(1000, [{'event': 'FINAL', 'percent': 50}])
        assert prizes == {'FINAL': 500}


class TestWinningPosition:
    """Tests for the last-digit scoring rule."""

    def test_last_digits(self):
        position = resolve_winning_position(23, 17)
        assert (position.row, position.col) == (3, 7)

    def test_zero_scores(self):
        position = resolve_winning_position(0, 0)
        assert (position.row, position.col) == (0, 0)

    def test_triple_digit_scores(self):
        position = resolve_winning_position(110, 100)
        assert (position.row, position.col) == (0, 0)

    def test_digit_index_first_and_last(self):
        """Test permutation inversion at both ends."""
        assert digit_index(ROW_DIGITS, 3) == 0
        assert digit_index(ROW_DIGITS, 5) == 9
        assert digit_index(ROW_DIGITS, 7) == 1

    def test_digit_index_missing(self):
        assert digit_index(None, 3) is None
        assert digit_index([], 3) is None
        assert digit_index([1, 2], 3) is None


class TestResolvePayouts:
    """Tests for full board payout resolution."""

    def test_fee_breakdown_uses_paid_squares(self, locked_board, row_zero_squares, all_scores):
        """Test pot is square price x paid squares (reserved square excluded)."""
        result = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        assert result.breakdown.total_pot == 10000
        assert result.breakdown.platform_fee == 500
        assert result.breakdown.prize_pool == 9500

    def test_winner_at_first_row(self, locked_board, row_zero_squares, all_scores):
        """Test 23-17 maps to grid row 0 (digit 3) and col 1 (digit 7)."""
        result = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        q1 = result.payouts[0]
        assert q1.event == 'Q1'
        assert q1.label == 'Quarter 1'
        assert (q1.row_digit, q1.col_digit) == (3, 7)
        assert (q1.row_index, q1.col_index) == (0, 1)
        assert q1.square_id == 'sq-0-1'
        assert q1.winner_id == 'user1'
        assert q1.amount == 1900
        assert q1.status == 'pending'

    def test_unpaid_square_at_last_index_cancels(self, locked_board, row_zero_squares, all_scores):
        """Test 15-25 maps to (9, 9), a reserved square, so the period is canceled."""
        result = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        half = result.payouts[1]
        assert (half.row_index, half.col_index) == (9, 9)
        assert half.status == 'canceled'
        assert half.winner_id is None
        assert half.amount == 0
        assert half.unclaimed_amount == 1900
        assert half.reason == 'unclaimed_square'

    def test_counts_only_real_winners(self, locked_board, row_zero_squares, all_scores):
        result = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        assert len(result.payouts) == 4
        assert result.payouts_created == 2
        assert [p.winner_id for p in result.winners] == ['user1', 'user5']
        assert result.total_awarded == 3800

    def test_score_without_rule_is_skipped(self, locked_board, row_zero_squares):
        scores = [Score(event='OT', team_a_score=3, team_b_score=7)]
        result = resolve_payouts_for_board(locked_board, row_zero_squares, scores)
        assert result.payouts == []

    def test_paid_square_without_owner_cancels(self, locked_board):
        squares = [Square(id='ghost', row_index=0, col_index=1, payment_status='paid')]
        scores = [Score(event='Q1', team_a_score=23, team_b_score=17)]
        result = resolve_payouts_for_board(locked_board, squares, scores)
        assert result.payouts[0].status == 'canceled'
        assert result.payouts[0].square_id == 'ghost'
        assert result.payouts_created == 0

    def test_unlocked_board_degrades_to_canceled(self, locked_board, row_zero_squares, all_scores):
        """Test missing digits cancel each period instead of raising."""
        board = locked_board.model_copy(update={'row_digits': None, 'col_digits': None})
        result = resolve_payouts_for_board(board, row_zero_squares, all_scores)
        assert len(result.payouts) == 4
        assert all(p.status == 'canceled' for p in result.payouts)
        assert all(p.reason == 'digits_unassigned' for p in result.payouts)
        assert len(result.warnings) == 4

    def test_running_total_pot_preferred(self, locked_board, row_zero_squares, all_scores):
        board = locked_board.model_copy(update={'total_pot': 20000})
        result = resolve_payouts_for_board(board, row_zero_squares, all_scores)
        assert result.breakdown.total_pot == 20000

    def test_fee_rate_falls_back_to_plan(self, locked_board, row_zero_squares, all_scores):
        """Test boards without a fee snapshot use their plan's rate."""
        board = locked_board.model_copy(update={'platform_fee_percent': None, 'fee_plan': 'pro_host'})
        result = resolve_payouts_for_board(board, row_zero_squares, all_scores, config=PlatformConfig())
        assert result.breakdown.platform_fee == 300

    def test_unknown_plan_without_snapshot_rejected(self, locked_board, row_zero_squares, all_scores):
        """Test a plan missing from the config is a validation error, not a KeyError."""
        board = locked_board.model_copy(update={'platform_fee_percent': None, 'fee_plan': 'pro'})
        with pytest.raises(BoardValidationError, match='Unknown fee plan: pro') as exc_info:
            resolve_payouts_for_board(board, row_zero_squares, all_scores, config=PlatformConfig())
        assert exc_info.value.status_code == 400

    def test_configured_host_fee_cap_applies(self, locked_board, row_zero_squares, all_scores):
        """Test 18% host fee is clamped to a 15% platform cap (10000 pot)."""
        board = locked_board.model_copy(update={'host_fee': HostFee(type='percentage', value=18)})
        config = PlatformConfig(max_host_fee_percent=15)
        result = resolve_payouts_for_board(board, row_zero_squares, all_scores, config=config)
        assert result.breakdown.host_fee == 1500
        assert result.breakdown.prize_pool == 8000
        assert 'Host fee 18% above 15% cap, clamped' in result.warnings

    def test_accepts_plain_dicts(self, locked_board):
        board = locked_board.model_dump()
        squares = [{'id': 's', 'row_index': 0, 'col_index': 1, 'owner_id': 'ann', 'payment_status': 'paid'}]
        scores = [{'event': 'FINAL', 'team_a_score': 3, 'team_b_score': 7}]
        result = resolve_payouts_for_board(board, squares, scores)
        assert result.payouts[0].winner_id == 'ann'
        assert result.payouts[0].amount == 380  # 40% of (1000 - 50)

    def test_duplicate_paid_square_rejected(self, locked_board):
        squares = [
            Square(id='a', row_index=1, col_index=1, owner_id='x', payment_status='paid'),
            Square(id='b', row_index=1, col_index=1, owner_id='y', payment_status='paid'),
        ]
        with pytest.raises(BoardValidationError):
            resolve_payouts_for_board(locked_board, squares, [])

    def test_duplicate_scores_rejected(self, locked_board, row_zero_squares):
        scores = [
            Score(event='Q1', team_a_score=3, team_b_score=7),
            Score(event='Q1', team_a_score=10, team_b_score=7),
        ]
        with pytest.raises(BoardValidationError):
            resolve_payouts_for_board(locked_board, row_zero_squares, scores)

    def test_is_deterministic(self, locked_board, row_zero_squares, all_scores):
        first = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        second = resolve_payouts_for_board(locked_board, row_zero_squares, all_scores)
        assert first.to_dict() == second.to_dict()
