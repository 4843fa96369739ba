from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Vanguard Desk"
    debug: bool = False

    # Database
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent.parent / 'vanguard.db'}"

    # Auth (tokens are issued elsewhere, we only verify them)
    jwt_secret: str = "change-me-vanguard-desk-development-secret"
    jwt_algorithm: str = "HS256"

    # SMTP - notifications are skipped unless host and user are set
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    mail_from: str = ""
    company_name: str = "Vanguard Machinery"

    # Chat
    recall_window_seconds: int = 120
    default_chat_subject: str = "Chat"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "VANGUARD_",
    }


settings = Settings()
