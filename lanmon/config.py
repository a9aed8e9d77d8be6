from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Durable state (history, alerts, tickets, ideas, agent status)
    data_dir: str = "data"
    lanmon_db_url: str | None = None  # Overrides the SQLite file under data_dir

    # Logging
    lanmon_log_level: str = "info"

    # CORS
    lanmon_cors_origins: str = "*"

    # Result caches (seconds, tracked independently per dataset)
    lanmon_cache_ttl_seconds: float = 30.0

    # Protocol checkers
    lanmon_http_timeout_ms: int = 5000
    lanmon_ping_timeout_seconds: int = 2
    lanmon_user_agent: str = "lan-monitor/1.0"

    # GPU telemetry
    lanmon_gpu_command: str = "nvidia-smi"
    lanmon_gpu_timeout_seconds: float = 10.0
    lanmon_gpu_warning_temp_c: float = 85.0

    # Retention
    lanmon_history_retention_days: int = 7
    lanmon_alert_retention_days: int = 7

    # Alert policy: False = record only on the transition to down
    lanmon_alert_every_down: bool = False

    # Registries (JSON files replacing the built-in lists)
    lanmon_targets_path: str | None = None
    lanmon_agents_path: str | None = None

    # Background tasks
    lanmon_background_tasks: bool = True
    lanmon_sweep_interval_seconds: float = 30.0  # 0 disables the sweep poller
    lanmon_agent_interval_seconds: float = 60.0
    lanmon_agent_timeout_seconds: float = 3.0

    # Chat / presence relay
    redis_url: str = "redis://localhost:6379/0"
    lanmon_chat_stream: str = "openclaw:chat"
    lanmon_presence_prefix: str = "openclaw:agents:"
    lanmon_presence_agents: str = "siegbert,eugene,bubblebass,sandy"

    model_config = {"env_prefix": "", "case_sensitive": False, "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def db_url(self) -> str:
        if self.lanmon_db_url:
            return self.lanmon_db_url
        return f"sqlite+aiosqlite:///{Path(self.data_dir) / 'lan-monitor.db'}"


settings = Settings()
