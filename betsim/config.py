"""Configuration and settings for the betting simulator."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("BETSIM_DATA_DIR", BASE_DIR / "data"))
DB_PATH = Path(os.getenv("BETSIM_DB_PATH", DATA_DIR / "betsim.db"))
EXPORT_DIR = DATA_DIR / "exports"

# Ensure data directory exists
DATA_DIR.mkdir(exist_ok=True)

# Accounts
STARTING_BALANCE = float(os.getenv("BETSIM_STARTING_BALANCE", "1000"))

# Broadcast (Discord webhook, optional)
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL", "")
BROADCAST_TIMEOUT_SECONDS = 5

# Odds calibration
# "quality_gap" or "banded" (the D1 vs D2 cliff table)
INTER_TIER_MODEL = os.getenv("BETSIM_INTER_TIER_MODEL", "quality_gap")
LEAGUE_MARGIN = float(os.getenv("BETSIM_LEAGUE_MARGIN", "0.08"))
CUP_MARGIN = float(os.getenv("BETSIM_CUP_MARGIN", "0.05"))

# Tournaments
TOURNAMENTS = {
    "d1": "Liga D1",
    "d2": "Liga D2",
    "d3": "Liga D3",
    "maradei": "Copa Maradei",
    "cv": "Copa ValencARc",
    "cd2": "Copa D2",
    "cd3": "Copa D3",
    "izoro": "Copa Intrazonal de Oro",
    "izplata": "Copa Intrazonal de Plata",
    "custom": "Custom",
}

KNOCKOUT_TOURNAMENTS = frozenset({"maradei", "cv", "cd2", "cd3", "izoro", "izplata"})

# Scorelines quoted on the odds board
COMMON_SCORES = [
    (0, 0), (1, 0), (0, 1), (1, 1), (2, 0), (0, 2), (2, 1), (1, 2),
    (2, 2), (3, 0), (0, 3), (3, 1), (1, 3), (3, 2), (2, 3), (3, 3),
    (4, 0), (0, 4), (4, 1), (1, 4), (4, 2), (2, 4), (4, 3), (3, 4), (4, 4),
]
