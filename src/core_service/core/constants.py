"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MAX_HIERARCHY_LEVEL = 10
MAX_BRANCH_CODE_LENGTH = 10
MAX_AREA_CODE_LENGTH = 10

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100
DEFAULT_RECENT_CHANGES = 10

DEFAULT_GEOFENCE_RADIUS_METERS = 100
EARTH_RADIUS_METERS = 6371000

DEFAULT_ANNUAL_ALLOCATION = 12
DEFAULT_SICK_ALLOCATION = 12
DEFAULT_MONTHLY_ACCRUAL = 1.0
DEFAULT_MAX_ACCRUAL = 24
DEFAULT_MAX_CARRY_OVER = 5
CARRYOVER_EXPIRY_MONTH = 6
CARRYOVER_EXPIRY_DAY = 30

DEFAULT_CURRENCY = "IDR"
