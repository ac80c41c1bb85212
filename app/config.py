from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./vote_board_game.db"
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Voting closes once a day by default (the batch closer runs daily)
    voting_window_minutes: int = 60 * 24
    ai_candidate_count: int = 3

    default_page_size: int = 20
    max_page_size: int = 100

    # 0 disables the in-process closer; an external scheduler can call
    # resolve_expired_turns instead
    turn_closer_interval_seconds: float = 0

    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    log_level: str = "INFO"


settings = Settings()
