import json
import os
import logging
from tree_optimizer.core import config
from tree_optimizer.models.tree import Forest, load_forest

# Set up logging
logger = logging.getLogger(__name__)

def load_seed_tree(path: str = None) -> Forest:
    path = path or config.SEED_TREE_FILE
    if not os.path.exists(path):
        logger.warning(f"Seed tree file {path} not found.")
        return ()
    with open(path, "r", encoding="utf-8") as f:
        return load_forest(json.load(f))
