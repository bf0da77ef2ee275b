import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    openai_api_key: Optional[str] = None
    model: str = "gpt-4.1"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000


def load_settings(env_file: Optional[str] = ".env") -> Settings:
    if env_file:
        load_dotenv(env_file)
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        model=os.getenv("PLANT_ID_MODEL", "gpt-4.1"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
    )
