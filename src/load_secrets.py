import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER", "postgres")
password = os.getenv("DB_PASSWORD", "")
host = os.getenv("DB_HOST", "localhost")
port = os.getenv("DB_PORT", "5432")
db_name = os.getenv("DB_NAME", "userdb")
db_backend = os.getenv("DB_BACKEND", "postgres").lower()

# Stats update tuning
retry_ceiling = int(os.getenv("STATS_RETRY_CEILING", "5"))
attempt_timeout = float(os.getenv("STATS_ATTEMPT_TIMEOUT", "5.0"))
retry_backoff = float(os.getenv("STATS_RETRY_BACKOFF", "0.01"))

log_level = os.getenv("LOG_LEVEL", "INFO").upper()

if db_backend not in ("postgres", "sqlite"):
    raise ValueError(f"DB_BACKEND must be 'postgres' or 'sqlite', got {db_backend!r}")
if retry_ceiling < 1:
    raise ValueError("STATS_RETRY_CEILING must be at least 1")
if attempt_timeout <= 0:
    raise ValueError("STATS_ATTEMPT_TIMEOUT must be positive")

if __name__ == "__main__":
    print(user, host, port, db_name, db_backend, retry_ceiling, attempt_timeout)
