import os
from dotenv import load_dotenv

load_dotenv()

# MongoDB configuration
MONGO_URI = os.getenv("MONGO_URL")
MONGO_DB = os.getenv("MONGO_DB", "voting_forum")

# Chain relay configuration
RPC_URL = os.getenv("RPC_URL", "https://forno.celo.org")
PRIVATE_KEY = os.getenv("PRIVATE_KEY")
VOTE_FACTORY_ADDRESS = os.getenv("VOTE_FACTORY_ADDRESS", "")
CHAIN_ID = int(os.getenv("CHAIN_ID")) if os.getenv("CHAIN_ID") else None
GAS_PRICE_GWEI = int(os.getenv("GAS_PRICE_GWEI", "30"))
FALLBACK_GAS_LIMIT = int(os.getenv("FALLBACK_GAS_LIMIT", "12000000"))
GAS_ESTIMATE_MARGIN = int(os.getenv("GAS_ESTIMATE_MARGIN", "120"))
TX_TIMEOUT = int(os.getenv("TX_TIMEOUT", "120"))

# JWT configuration
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Identity wallet (Self) configuration
SELF_APP_NAME = os.getenv("SELF_APP_NAME", "Voting Forum")
SELF_SCOPE = os.getenv("SELF_SCOPE")
SELF_ENDPOINT = os.getenv("SELF_ENDPOINT")
SELF_MIN_AGE = int(os.getenv("SELF_MIN_AGE", "18"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
