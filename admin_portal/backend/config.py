from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Storage database written by the game server; this API only reads it
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "singularity"
    db_password: str = "singularity"
    db_name: str = "singularitydb"
    db_sslmode: str = "prefer"

    cors_origins: List[str] = ["*"]
    max_page_size: int = 500

    class Config:
        env_file = ".env"
        env_prefix = "singularity_"
        case_sensitive = False

settings = Settings()
