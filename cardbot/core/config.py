from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

class Settings(BaseSettings):
    BOT_TOKEN: str = Field(default="")
    PROFILE_SERVICE_URL: str = Field(default="http://localhost:5002")
    REQUEST_TIMEOUT: float = Field(default=10.0)
    FSM_TIMEOUT_MINUTES: int = Field(default=30)
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="bot.log")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

settings = Settings()

BOT_TOKEN = settings.BOT_TOKEN
PROFILE_SERVICE_URL = settings.PROFILE_SERVICE_URL
REQUEST_TIMEOUT = settings.REQUEST_TIMEOUT
FSM_TIMEOUT_MINUTES = settings.FSM_TIMEOUT_MINUTES
