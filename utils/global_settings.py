from pydantic_settings import BaseSettings, SettingsConfigDict
import logging, os
from logging.handlers import RotatingFileHandler
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./skipline.db"
    sql_echo: bool = False

    secret_key: str | None = None
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # attempts before a conflicting write is reported to the caller
    join_retry_limit: int = 5
    advance_retry_limit: int = 5

    log_dir: str = "logs"
    log_level: str = "DEBUG"


settings = Settings()

_handler = None


def setup_logging():
    """
    Attach the rotating file handler to the root logger.

    Safe to call from every module; the handler is only installed once.
    """
    global _handler
    if _handler is not None:
        return

    os.makedirs(settings.log_dir, exist_ok=True)
    log_file_path = os.path.join(settings.log_dir, 'skipline.log')

    _handler = RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        mode='a'
    )
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    _handler.setFormatter(formatter)

    logging.getLogger().setLevel(settings.log_level)
    logging.getLogger().addHandler(_handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.access").setLevel(logging.ERROR)
    logging.getLogger("uvicorn.error").setLevel(logging.ERROR)
