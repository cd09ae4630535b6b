import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or "sqlite:///webhook_playground.db"

    # --- Signature verification (one worked provider) ---
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    SIGNATURE_PROVIDER = os.environ.get("SIGNATURE_PROVIDER", "stripe")
    SIGNATURE_HEADER = os.environ.get("SIGNATURE_HEADER", "Stripe-Signature")

    # --- Retention ---
    MAX_EVENTS = int(os.environ.get("MAX_EVENTS", 100))

    # --- Replay ---
    # Unset means the transport default (requests waits indefinitely).
    _replay_timeout = os.environ.get("REPLAY_TIMEOUT")
    REPLAY_TIMEOUT = float(_replay_timeout) if _replay_timeout else None
    REPLAY_RATE_LIMIT = os.environ.get("REPLAY_RATE_LIMIT", "30 per minute")

    # --- Browser clients (event list UI) ---
    CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "*")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True


class TestConfig(Config):
    """Testing — in-memory SQLite, rate limiting off."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    SIGNATURE_PROVIDER = "stripe"
    SIGNATURE_HEADER = "Stripe-Signature"
    MAX_EVENTS = 100
    REPLAY_TIMEOUT = None
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production / shared deployments."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
