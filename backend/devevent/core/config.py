from functools import lru_cache
from urllib.parse import unquote, urlsplit
from pydantic_settings import BaseSettings
from pydantic import MongoDsn, field_validator
def parse_cloudinary_url(url: str) -> tuple[str, str, str]:
    """cloudinary://<key>:<secret>@<cloud> → (cloud, key, secret); key/secret may be %-encoded."""
    parts = urlsplit(url)
    if parts.scheme != "cloudinary" or not (parts.hostname and parts.username and parts.password):
        raise ValueError("CLOUDINARY_URL must look like cloudinary://<key>:<secret>@<cloud>")
    return parts.hostname, unquote(parts.username), unquote(parts.password)
class Settings(BaseSettings):
    mongodb_uri: MongoDsn
    mongodb_db: str = "devevent"
    cloudinary_url: str
    asset_folder: str = "DevEvent"
    db_timeout_seconds: float = 10.0
    upload_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    class Config: env_file = ".env"
    # checked here so a bad URL stops startup instead of failing each request
    @field_validator("cloudinary_url")
    @classmethod
    def _check_cloudinary_url(cls, v: str) -> str:
        parse_cloudinary_url(v)
        return v
@lru_cache
def get_settings() -> Settings: return Settings()
