"""Store key namespace.

Live sets, snapshots and series use fixed names; archives are keyed by
the UTC calendar date they cover (see ``pixelstats.services.dates``).
"""

# live score sets
TOTAL_USERS = "rank"
DAILY_USERS = "rankd"
DAILY_COUNTRIES = "crankd"

# hourly country aggregation
HOURLY_COUNTRIES = "crankh"
PREV_HOURLY_COUNTRIES = "pcrankd"
PREV_HOURLY_COUNTRIES_TS = "pcrankdts"

# top 10 of the previous day
PREV_DAY_TOP = "prankd"

# bounded series
ONLINE_USERS = "tonl"
HOURLY_PIXELS = "thpx"
DAILY_PIXELS = "tdpx"

# "<ts_ms>,<sum>" of the last hourly pixel sample
PREV_HOURLY_PLACED = "tmph"


def user_archive(date_key: str) -> str:
    """Daily user ranking archived at rollover."""
    return f"ds:{date_key}"


def country_archive(date_key: str) -> str:
    """Daily country ranking archived at rollover."""
    return f"cds:{date_key}"
