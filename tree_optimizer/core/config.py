import os
import json
import logging
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Engine Configuration
SEED_TREE_FILE = os.getenv("SEED_TREE_FILE", os.path.join(PACKAGE_DIR, "data", "troubleshooting_tree.json"))
SETTINGS_FILE = os.getenv("SETTINGS_FILE", os.path.join(os.getcwd(), "data", "settings.json"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "NONE").upper()

# Optimization defaults (overridable from the settings file)
MIN_DATA_POINTS = int(os.getenv("MIN_DATA_POINTS", "20"))
OPTIMIZATION_STRENGTH = os.getenv("OPTIMIZATION_STRENGTH", "balanced")

if LOG_LEVEL != "NONE":
    logging.getLogger("tree_optimizer").setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)

# Settings-file keys that map onto OptimizationSettings, with their environment fallbacks
OPTIMIZATION_DEFAULTS = {
    "min_data_points": MIN_DATA_POINTS,
    "optimization_strength": OPTIMIZATION_STRENGTH,
    "target_metrics": ["pathLength", "completionTime", "successRate"],
    "preserve_nodes": [],
}

def get_all_global_settings() -> dict:
    if not os.path.exists(SETTINGS_FILE):
        return {}
    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            settings = json.load(f)
    except Exception as e:
        logger.error(f"Error loading settings from {SETTINGS_FILE}: {e}")
        return {}
    if not isinstance(settings, dict):
        logger.error(f"Ignoring settings file {SETTINGS_FILE}: expected a JSON object")
        return {}
    return settings

def get_global_setting(key: str, default=None):
    """Settings-file value for ``key``; optimization keys fall back to their environment default."""
    if default is None:
        default = OPTIMIZATION_DEFAULTS.get(key)
    return get_all_global_settings().get(key, default)

def update_global_setting(key: str, value) -> bool:
    """
    Persists one setting. Optimization keys are validated first, so a bad value
    raises ``ValidationError`` instead of breaking every later ``default_settings()``.
    Returns False when the file could not be written.
    """
    if key in OPTIMIZATION_DEFAULTS:
        from tree_optimizer.models.optimization import OptimizationSettings
        OptimizationSettings.model_validate({key: value})

    settings = get_all_global_settings()
    settings[key] = value
    try:
        os.makedirs(os.path.dirname(SETTINGS_FILE), exist_ok=True)
        with open(SETTINGS_FILE, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=4)
    except Exception as e:
        logger.error(f"Error saving settings to {SETTINGS_FILE}: {e}")
        return False
    return True

def default_settings():
    """Operator defaults: environment first, then whatever the settings file overrides."""
    from tree_optimizer.models.optimization import OptimizationSettings

    return OptimizationSettings(**{key: get_global_setting(key) for key in OPTIMIZATION_DEFAULTS})
