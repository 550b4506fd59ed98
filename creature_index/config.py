"""Configuration settings for the creature index."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
PACKS_DIR = Path(os.getenv("PACKS_DIR", DATA_DIR / "packs"))

# Snapshot settings
INDEX_FILENAME = os.getenv("INDEX_FILENAME", "enhanced-creature-index.json")
INDEX_VERSION = "1.0.0"

# Index behaviour
ENABLE_ENHANCED_INDEX = os.getenv("ENABLE_ENHANCED_INDEX", "true").lower() == "true"
AUTO_INVALIDATE_INDEX = os.getenv("AUTO_INVALIDATE_INDEX", "true").lower() == "true"
INDEX_BUILD_DEADLINE = float(os.getenv("INDEX_BUILD_DEADLINE", "600"))  # seconds
DESCRIPTION_MAX_LENGTH = int(os.getenv("DESCRIPTION_MAX_LENGTH", "500"))

# Query settings
QUERY_DEFAULT_LIMIT = int(os.getenv("QUERY_DEFAULT_LIMIT", "500"))
QUERY_MAX_LIMIT = int(os.getenv("QUERY_MAX_LIMIT", "1000"))

# Host settings read from Foundry (module setting keys)
FOUNDRY_MODULE_ID = os.getenv("FOUNDRY_MODULE_ID", "foundry-mcp-bridge")
SETTING_AUTO_REBUILD = "autoRebuildIndex"
SETTING_ENHANCED_INDEX = "enableEnhancedCreatureIndex"

# Where packs come from: "foundry" (live world over Socket.IO) or "local" (exported pack files)
CONTENT_HOST = os.getenv("CONTENT_HOST", "foundry")

# Foundry bridge settings
FOUNDRY_COMMAND_TIMEOUT = float(os.getenv("FOUNDRY_COMMAND_TIMEOUT", "30.0"))
FOUNDRY_CREATURE_PACK_TYPE = "Actor"

# Local host settings (offline builds from exported packs)
LOCAL_SYSTEM_ID = os.getenv("LOCAL_SYSTEM_ID", "dnd5e")
LOCAL_WORLD_ID = os.getenv("LOCAL_WORLD_ID", "local")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
