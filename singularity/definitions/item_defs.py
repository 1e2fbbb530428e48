# singularity/definitions/item_defs.py
"""
Central definitions for item types, categories and the default item catalog.
"""

# --- Item Type Constants ---
GENERAL = "GENERAL"
RANGED_WEAPON = "RANGED_WEAPON"
MELEE_WEAPON = "MELEE_WEAPON"
AMMO = "AMMO"
CONTAINER = "CONTAINER"
RESOURCE = "RESOURCE"
EXPLOSIVE = "EXPLOSIVE"
NOTE = "NOTE"

# --- Item Categories (host catalog grouping, used by the intake allow-list) ---
CATEGORY_WEAPON = "Weapon"
CATEGORY_AMMUNITION = "Ammunition"
CATEGORY_RESOURCES = "Resources"
CATEGORY_COMPONENT = "Component"
CATEGORY_ITEMS = "Items"
CATEGORY_ATTIRE = "Attire"
CATEGORY_TOOL = "Tool"
CATEGORY_MEDICAL = "Medical"
CATEGORY_FOOD = "Food"
CATEGORY_MISC = "Misc"

DEFAULT_MAX_STACK = 1

# Seeded into the item_templates table on first start.
# stats keys: max_stack, capacity (sub-container slots), magazine_capacity
DEFAULT_ITEM_TEMPLATES = [
    {"id": -932201673, "shortname": "scrap", "name": "Scrap", "type": RESOURCE,
     "category": CATEGORY_ITEMS, "stats": {"max_stack": 1000}},
    {"id": -151838493, "shortname": "wood", "name": "Wood", "type": RESOURCE,
     "category": CATEGORY_RESOURCES, "stats": {"max_stack": 1000}},
    {"id": -2099697608, "shortname": "stones", "name": "Stones", "type": RESOURCE,
     "category": CATEGORY_RESOURCES, "stats": {"max_stack": 1000}},
    {"id": 69511070, "shortname": "metal.fragments", "name": "Metal Fragments", "type": RESOURCE,
     "category": CATEGORY_RESOURCES, "stats": {"max_stack": 1000}},
    {"id": 1545779598, "shortname": "rifle.ak", "name": "Assault Rifle", "type": RANGED_WEAPON,
     "category": CATEGORY_WEAPON, "stats": {"magazine_capacity": 30}},
    {"id": 818877484, "shortname": "pistol.semiauto", "name": "Semi-Automatic Pistol", "type": RANGED_WEAPON,
     "category": CATEGORY_WEAPON, "stats": {"magazine_capacity": 10}},
    {"id": -1211166256, "shortname": "ammo.rifle", "name": "5.56 Rifle Ammo", "type": AMMO,
     "category": CATEGORY_AMMUNITION, "stats": {"max_stack": 128}},
    {"id": 785728077, "shortname": "ammo.pistol", "name": "Pistol Bullet", "type": AMMO,
     "category": CATEGORY_AMMUNITION, "stats": {"max_stack": 128}},
    {"id": 2068884361, "shortname": "smallbackpack", "name": "Small Backpack", "type": CONTAINER,
     "category": CATEGORY_ATTIRE, "stats": {"capacity": 6}},
    {"id": 1414245162, "shortname": "note", "name": "Note", "type": NOTE,
     "category": CATEGORY_ITEMS, "stats": {"max_stack": 1}},
    {"id": 1248356124, "shortname": "explosive.timed", "name": "Timed Explosive Charge", "type": EXPLOSIVE,
     "category": CATEGORY_TOOL, "stats": {"max_stack": 10}},
    {"id": -1878475007, "shortname": "explosive.satchel", "name": "Satchel Charge", "type": EXPLOSIVE,
     "category": CATEGORY_TOOL, "stats": {"max_stack": 10}},
    {"id": -742865266, "shortname": "ammo.rocket.basic", "name": "Rocket", "type": AMMO,
     "category": CATEGORY_AMMUNITION, "stats": {"max_stack": 3}},
    {"id": -1841918730, "shortname": "ammo.rocket.hv", "name": "High Velocity Rocket", "type": AMMO,
     "category": CATEGORY_AMMUNITION, "stats": {"max_stack": 3}},
    {"id": 1638322904, "shortname": "ammo.rocket.fire", "name": "Incendiary Rocket", "type": AMMO,
     "category": CATEGORY_AMMUNITION, "stats": {"max_stack": 3}},
    {"id": -2072273936, "shortname": "bandage", "name": "Bandage", "type": GENERAL,
     "category": CATEGORY_MEDICAL, "stats": {"max_stack": 3}},
]
