"""Pool constants.

Centralizes the fixed-point scales and bounds used by the pool math.
"""

# Precision of 6 digits, used to scale the genesis share issuance
PRECISION = 1_000_000

# Shares minted by the first deposit into an empty pool, regardless of amounts
GENESIS_SHARES = 100 * PRECISION

# Fee rates are expressed in per-mille (parts per 1000)
FEE_DENOMINATOR = 1000

# Default trading fee: 3 per-mille (0.3%)
DEFAULT_FEE_RATE = 3

# Balances, reserves and shares are unsigned 128-bit quantities
BALANCE_MAX = 2**128 - 1
