# singularity/definitions/tiers.py
"""
Storage tier tables and wipe thresholds.
These are fixed contracts, not server configuration.
"""
import math

MIN_TIER = 1
MAX_TIER = 5

# Slots in the scratch container opened at each tier
TIER_SLOTS = {1: 6, 2: 12, 3: 24, 4: 48, 5: 96}

# Maximum scrap that may sit in storage at each tier
TIER_SCRAP_CAP = {1: 1000, 2: 5000, 3: 10000, 4: 25000, 5: math.inf}

# Scrap cost to reach a tier from the one below it
TIER_UPGRADE_COST = {2: 2000, 3: 4000, 4: 8000, 5: 16000}

# Scrap cost to keep a tier across wipes
TIER_UPKEEP_COST = {1: 0, 2: 2000, 3: 6000, 4: 14000, 5: 30000}

# --- Wipe Handling ---
WIPE_DEBOUNCE_HOURS = 12      # A second wipe signal inside this window is a restart, not a wipe
WIPES_BEFORE_DOWNGRADE = 2    # Unpaid wipes at a tier before it falls back to tier 1

# Permission granted for each tier above 1, e.g. "singularitystorage.tier3"
TIER_PERMISSION_FORMAT = "singularitystorage.tier{tier}"


def slots_for(tier: int) -> int:
    return TIER_SLOTS[clamp_tier(tier)]


def scrap_cap_for(tier: int) -> float:
    return TIER_SCRAP_CAP[clamp_tier(tier)]


def upgrade_cost_to(tier: int) -> int:
    return TIER_UPGRADE_COST.get(tier, 0)


def upkeep_cost_for(tier: int) -> int:
    return TIER_UPKEEP_COST[clamp_tier(tier)]


def clamp_tier(tier: int) -> int:
    return max(MIN_TIER, min(MAX_TIER, int(tier)))


def format_cap(tier: int) -> str:
    cap = scrap_cap_for(tier)
    return "unlimited" if math.isinf(cap) else f"{int(cap):,}"
