# config.py
"""
Server configuration settings.
"""
import os

# --- Database ---
DB_CONFIG = {
    "user": os.environ.get("SINGULARITY_DB_USER", "singularity"),
    "password": os.environ.get("SINGULARITY_DB_PASSWORD", "singularity"),
    "database": os.environ.get("SINGULARITY_DB_NAME", "singularitydb"),
    "host": os.environ.get("SINGULARITY_DB_HOST", "localhost"),
}
ENCODING = "utf-8" # Encoding for messages sent to player clients

# --- Network ---
HOST = os.environ.get("SINGULARITY_HOST", "0.0.0.0")
PORT = int(os.environ.get("SINGULARITY_PORT", "4000"))

# --- World Lifecycle ---
# The host engine changes this whenever it generates a new map. A new value is a wipe.
WORLD_SAVE_ID = os.environ.get("SINGULARITY_WORLD_SAVE_ID", "")

# --- Game Loop & Save ---
TICKER_INTERVAL_SECONDS = 1.0     # How often session validation runs.
AUTOSAVE_INTERVAL_SECONDS = 300   # 300 seconds = 5 minutes

# --- Prefabs ---
STORAGE_PREFAB = "assets/prefabs/deployable/large wood storage/box.wooden.large.prefab"
TERMINAL_PREFAB = "assets/prefabs/deployable/vendingmachine/vendingmachine.deployed.prefab"

# --- Terminals ---
AUTO_SPAWN_TERMINALS = True
TERMINAL_DISPLAY_NAME = "Singularity Storage Terminal"
INTERACTION_DISTANCE = 3.0        # Players further than this from their terminal are disconnected from storage
LANDMARK_SNAP_RADIUS = 100.0      # Manual placements this close to a landmark face relative to it
TERMINAL_REMOVE_RADIUS = 10.0
SANE_HEIGHT_MIN = -5.0            # Restored placements outside this band are snapped to the ground
SANE_HEIGHT_MAX = 50.0
GROUND_OFFSET = 0.1

# --- Intake Policy ---
ALLOW_BLACKLISTED_ITEMS = False
BLACKLISTED_ITEMS = [
    "explosive.timed",
    "explosive.satchel",
    "ammo.rocket.basic",
    "ammo.rocket.hv",
    "ammo.rocket.fire",
]
# None allows every category. Otherwise a list of category names from definitions/item_defs.py
ALLOWED_CATEGORIES = None

# --- Economy ---
SCRAP_SHORTNAME = "scrap"

# --- Player Inventory ---
MAIN_INVENTORY_SLOTS = 24
BELT_SLOTS = 6

# --- Permissions ---
PERMISSION_USE = "singularitystorage.use"
PERMISSION_ADMIN = "singularitystorage.admin"
# Granted to every player on login
DEFAULT_PERMISSIONS = [PERMISSION_USE]
# Player ids with admin rights on the console server, comma separated
ADMIN_PLAYER_IDS = {int(pid) for pid in os.environ.get("SINGULARITY_ADMIN_IDS", "").split(",") if pid.strip().isdigit()}
