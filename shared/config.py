import os
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseModel):
    app_env: str = Field(default=os.getenv("APP_ENV", "dev"))
    data_dir: str = Field(default=os.getenv("DATA_DIR", "./storage_data"))
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    # Optimistic mutations
    undo_window_seconds: float = Field(default=float(os.getenv("UNDO_WINDOW_SECONDS", "5.0")))
    temp_id_prefix: str = Field(default=os.getenv("TEMP_ID_PREFIX", "temp-"))
    offline_id_prefix: str = Field(default=os.getenv("OFFLINE_ID_PREFIX", "OFFLINE-"))

    # Document store stand-in
    remote_latency_ms: int = Field(default=int(os.getenv("REMOTE_LATENCY_MS", "0")))

    # Listing
    default_page_size: int = Field(default=int(os.getenv("DEFAULT_PAGE_SIZE", "25")))
    low_stock_threshold: int = Field(default=int(os.getenv("LOW_STOCK_THRESHOLD", "10")))

    # POS reporting
    performance_window_days: int = Field(default=int(os.getenv("PERFORMANCE_WINDOW_DAYS", "30")))
    cost_estimate_ratio: float = Field(default=float(os.getenv("COST_ESTIMATE_RATIO", "0.7")))

    # Toasts
    notification_history: int = Field(default=int(os.getenv("NOTIFICATION_HISTORY", "50")))

    # LangSmith
    langsmith_api_key: str = Field(default=os.getenv("LANGSMITH_API_KEY", ""))
    langsmith_project: str = Field(default=os.getenv("LANGSMITH_PROJECT", "stocksuite-sync"))
    langsmith_tracing: bool = Field(default=os.getenv("LANGSMITH_TRACING", "0") == "1")

settings = Settings()
os.makedirs(settings.data_dir, exist_ok=True)
