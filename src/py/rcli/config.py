from os import getenv

PORT: int = int(getenv("PORT", 8080))

# The server listens on all interfaces unless told otherwise
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

DIR: str = getenv("RCLI_DIR", ".")

LOG_REQUESTS: bool = getenv("RCLI_LOG_REQUESTS", "1") == "1"

LOG_LEVEL: str = getenv("RCLI_LOG_LEVEL", "info")

# EOF
