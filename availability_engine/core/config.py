from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "Asia/Kolkata"

    STORE_PROVIDER: str = "memory"  # "memory", "json", "firestore"
    JSON_STORE_DIR: str = "./data/documents"

    FIRESTORE_PROJECT_ID: str | None = None
    FIRESTORE_DATABASE: str = "(default)"
    FIREBASE_CREDENTIALS_PATH: str | None = None  # service account JSON; Application Default Credentials when unset

    BOOKINGS_COLLECTION: str = "service_bookings"
    WORKERS_COLLECTION: str = "service_workers"
    OFFERINGS_COLLECTION: str = "service_services"
    SNAPSHOTS_COLLECTION: str = "company_availability"
    RESERVATIONS_COLLECTION: str = "worker_reservations"

    MAX_CONCURRENCY: int = 16  # 0 disables the bound
    STORE_TIMEOUT_SECONDS: float = 5.0
    SNAPSHOT_TTL_SECONDS: int = 24 * 60 * 60
    STATUS_CACHE_SECONDS: int = 5 * 60
    RESERVATION_HOLD_SECONDS: int = 10 * 60
    SWEEP_INTERVAL_SECONDS: int = 5 * 60  # 0 disables the sweep loop
    AVAILABILITY_WINDOW_HOURS: int = 24

    REACTOR_ENABLED: bool = True
    EVENTS_SECRET: str | None = None
    EVENTS_TOLERANCE_SECONDS: int = 5 * 60  # 0 disables the timestamp check


settings = Settings()
