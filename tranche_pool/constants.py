"""Protocol-wide constants."""

BP_FACTOR = 10_000

# 30/360 day-count convention
DAYS_IN_A_MONTH = 30
DAYS_IN_A_YEAR = 360
