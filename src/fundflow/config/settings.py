import os
from dotenv import load_dotenv
load_dotenv()
# ---- Etherscan ----
ETHERSCAN_API_KEY = os.environ.get("ETHERSCAN_API_KEY")
ETHERSCAN_BASE_URL = os.environ.get("ETHERSCAN_BASE_URL", "https://api.etherscan.io/api")
ETHERSCAN_MIN_INTERVAL_MS = int(os.environ.get("ETHERSCAN_MIN_INTERVAL_MS", "5000"))

# ---- blockchain.info ----
BLOCKCHAIN_INFO_BASE_URL = os.environ.get("BLOCKCHAIN_INFO_BASE_URL", "https://blockchain.info")
BLOCKCHAIN_INFO_MIN_INTERVAL_MS = int(os.environ.get("BLOCKCHAIN_INFO_MIN_INTERVAL_MS", "10000"))

# ---- urlscan.io ----
URLSCAN_BASE_URL = os.environ.get("URLSCAN_BASE_URL", "https://urlscan.io/api/v1/search/")
URLSCAN_API_KEY = os.environ.get("URLSCAN_API_KEY")      # optional for search
URLSCAN_MIN_INTERVAL_MS = int(os.environ.get("URLSCAN_MIN_INTERVAL_MS", "5000"))

HTTP_TIMEOUT_SEC = 15

# ----- Normalization -----
ETH_DECIMALS = 4
BTC_DECIMALS = 8
BTC_MAX_TXS = 10     # bounded recent window per call

# ----- Graph colors -----
ETH_NODE_COLOR = "#62688F"
BTC_NODE_COLOR = "#F7931A"
DOMAIN_NODE_COLOR = BTC_NODE_COLOR
SEED_NODE_COLOR = "#FF0000"
FUND_TAG_COLOR = "red"
VICTIM_TAG_COLOR = "blue"

# ----- Sessions -----
FUNDFLOW_SESSION_DIR = os.environ.get("FUNDFLOW_SESSION_DIR", ".fundflow/sessions")
FUNDFLOW_USER_ID = os.environ.get("FUNDFLOW_USER_ID", "local")
DEDUPE_BY_HASH = os.environ.get("DEDUPE_BY_HASH", "").strip().lower() in ("1", "true", "yes")
