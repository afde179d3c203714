"""
Monitoring system configuration.

RPC endpoints, polling cadence, history bounds and alert settings.
"""

import logging
import os

# Generic RPC endpoint - also used to detect the default network
RPC_URL = os.getenv("RPC_URL")
ALCHEMY_API_KEY = os.getenv("ALCHEMY_API_KEY", "YOUR_API_KEY")
DEFAULT_NETWORK = os.getenv("DEFAULT_NETWORK", "ethereum")

# RPC behaviour
RPC_TIMEOUT_SECONDS = float(os.getenv("RPC_TIMEOUT_SECONDS", 20))
BLOCK_POLL_INTERVAL_SECONDS = float(os.getenv("BLOCK_POLL_INTERVAL_SECONDS", 12))

# History (in-memory, process lifetime only)
MAX_HISTORY = int(os.getenv("MAX_HISTORY", 100))
DEFAULT_HISTORY_LIMIT = 10
HISTORICAL_SNAPSHOT_SIZE = 5

# Applied when a monitor request carries no threshold rules at all
DEFAULT_THRESHOLD_RULES = {
    "apy_spike_percent": 10,
    "tvl_drain_percent": 20,
}

# Sweep defaults
SWEEP_DEFAULT_PROTOCOLS = ["aave_v3", "compound_v3", "morpho"]
SWEEP_DEFAULT_NETWORKS = ["ethereum", "base", "polygon", "arbitrum", "optimism"]
HIGH_APY_OPPORTUNITY_PERCENT = 3.0

# Alert notification settings
ALERT_CONFIG = {
    "slack_webhook": os.getenv("SLACK_WEBHOOK_URL"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging for processes embedding the monitor."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
