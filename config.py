import os
from dotenv import load_dotenv
load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///interview_analytics.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE = os.getenv("RQ_QUEUE", "analytics")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # recompute scheduler
    RECOMPUTE_MAX_RETRIES = int(os.getenv("RECOMPUTE_MAX_RETRIES", "3"))
    RECOMPUTE_RETRY_DELAY_SEC = float(os.getenv("RECOMPUTE_RETRY_DELAY_SEC", "0.5"))
    RECOMPUTE_TIMEOUT_SEC = float(os.getenv("RECOMPUTE_TIMEOUT_SEC", "30"))
    RECOMPUTE_DEFER_SEC = int(os.getenv("RECOMPUTE_DEFER_SEC", "60"))
    GLOBAL_LOCK_TIMEOUT_SEC = float(os.getenv("GLOBAL_LOCK_TIMEOUT_SEC", "30"))
    RESCAN_PAGE_SIZE = int(os.getenv("RESCAN_PAGE_SIZE", "500"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REDIS_URL = None
    RECOMPUTE_RETRY_DELAY_SEC = 0.0
    RECOMPUTE_TIMEOUT_SEC = 5.0
    RESCAN_PAGE_SIZE = 3
