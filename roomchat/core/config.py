# roomchat/core/config.py
import os
from typing import Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - STORE_BACKEND the store to use: "memory" or "redis"
        - BLOB_DIR where the local blob store writes uploaded files
        - FILES_URL_PREFIX the URL prefix handed out as file locators
    """

    # Load environment variables from the .env file
    load_dotenv()

    STORE_BACKEND: Literal["memory", "redis"] = os.getenv("STORE_BACKEND", "memory")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() == "true"

    BLOB_DIR: str = os.getenv("BLOB_DIR", "uploads")
    FILES_URL_PREFIX: str = os.getenv("FILES_URL_PREFIX", "/files")

    SYSTEM_SENDER: str = os.getenv("SYSTEM_SENDER", "System")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
