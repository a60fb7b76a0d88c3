from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from typing import Optional


load_dotenv()


class Settings(BaseSettings):
    app_name: str = "PDI Desk API"
    debug: bool = False
    database_url: str = "sqlite:///./pdi_desk.db"
    host: str = "127.0.0.1"
    port: int = 8000
    secret_key: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    auth_cookie_name: str = "auth-token"
    cookie_secure: bool = False
    allowed_hosts: str = ""
    public_url: str = "http://localhost:8000"
    log_file: Optional[str] = "logs/application.log"

    # Registration / request rules
    auto_approve_users: bool = False
    single_pending_request: bool = False

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_from_email: str = ""
    smtp_from_name: str = "PDI Desk"


settings = Settings()

if not settings.secret_key:
    raise RuntimeError("Secret key not configured.")
