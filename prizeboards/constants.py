"""Constants and default tables for prize boards."""

GRID_SIZE = 10
DIGITS = tuple(range(GRID_SIZE))

# Board lifecycle
BOARD_STATUSES = ('draft', 'open', 'locked', 'completed', 'canceled')

BOARD_TRANSITIONS = {
    'draft': ('open', 'canceled'),
    'open': ('locked', 'canceled'),
    'locked': ('completed', 'canceled'),
    'completed': (),
    'canceled': (),
}

# Square payment states (only 'paid' squares are eligible to win)
SQUARE_STATUSES = ('available', 'reserved', 'paid')

PAYOUT_PENDING = 'pending'
PAYOUT_CANCELED = 'canceled'

# Scoring periods
EVENT_LABELS = {
    'Q1': 'Quarter 1',
    'HALF': 'Halftime',
    'Q3': 'Quarter 3',
    'FINAL': 'Final',
}

# Platform fee rate per host plan (fraction of the pot)
DEFAULT_FEE_PLANS = {
    'payg': 0.075,
    'host_plus': 0.05,
    'pro_host': 0.03,
}

DEFAULT_FEE_PLAN = 'payg'

MAX_HOST_FEE_PERCENT = 20

# Payout rules per payout type; percents of the prize pool
DEFAULT_PAYOUT_RULES = {
    'standard': [{'event': 'FINAL', 'percent': 100}],
    'quarters': [
        {'event': 'Q1', 'percent': 20},
        {'event': 'HALF', 'percent': 20},
        {'event': 'Q3', 'percent': 20},
        {'event': 'FINAL', 'percent': 40},
    ],
    'halves': [
        {'event': 'HALF', 'percent': 50},
        {'event': 'FINAL', 'percent': 50},
    ],
    'custom': [{'event': 'FINAL', 'percent': 100}],
}

DEFAULT_FROM_EMAIL = 'Prize Boards <noreply@prize-boards.com>'
DEFAULT_APP_URL = 'https://prize-boards.com'
