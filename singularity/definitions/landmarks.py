# singularity/definitions/landmarks.py
"""
Canonical landmark classes.

Raw landmark names from the host embed instance-specific suffixes
(e.g. "assets/bundled/prefabs/autospawn/monument/medium/compound.prefab").
Each rule maps any of its substrings to one canonical class. Rules are
checked in order and the first match wins, since some names contain
several candidate substrings.
"""

# (canonical name, substrings of which any must appear, substrings that must all appear)
CLASSIFICATION_RULES = [
    ("Bandit Camp", ("bandit",), ()),
    ("Outpost", ("compound", "outpost"), ()),
    ("Fishing Village", ("fishing",), ()),
    ("Lighthouse", ("lighthouse",), ()),
    ("Gas Station", ("gas_station", "gasstation"), ()),
    ("Supermarket", ("supermarket",), ()),
    ("Mining Outpost", ("mining_quarry",), ()),
    ("Warehouse", ("warehouse",), ()),
    ("Water Treatment Plant", ("water_treatment",), ()),
    ("Airfield", ("airfield",), ()),
    ("Power Plant", ("powerplant",), ()),
    ("Train Yard", ("trainyard",), ()),
    ("Junkyard", ("junkyard",), ()),
    ("Radtown", ("radtown_small",), ()),
    ("Sphere Tank", ("sphere_tank",), ()),
    ("Satellite Dish", ("satellite",), ()),
    ("Cave", ("cave",), ()),
    ("Harbor", ("harbor",), ()),
    ("Small Oil Rig", ("oilrig",), ("small",)),
    ("Large Oil Rig", ("oilrig",), ()),
]

# Class name used for terminals placed with no landmark anywhere in the world.
CUSTOM_CLASS = "Custom"

# Strips trailing instance numbers from display names ("Oxum's Gas Station 2" -> "Oxum's Gas Station").
INSTANCE_SUFFIX_PATTERN = r"\s*\d+$"
