import logging
from pydantic_settings import BaseSettings

# Set up logging for this module
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Database
    MONGO_URI: str
    MONGO_DB_NAME: str | None = None  # Falls back to the path part of MONGO_URI

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days, same as the old web client
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Email configuration
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 465
    SENDER_EMAIL: str | None = None
    SENDER_PASSWORD: str | None = None
    ADMIN_EMAIL: str | None = None  # Receives contact + subscriber notifications
    SITE_NAME: str = "Daily World Blog"

    # DigitalOcean Spaces configuration
    DO_SPACES_ENDPOINT: str | None = None
    DO_SPACES_KEY: str | None = None
    DO_SPACES_SECRET: str | None = None
    DO_SPACES_BUCKET: str | None = None
    DO_SPACES_REGION: str = "nyc3"
    DO_SPACES_CDN_ENDPOINT: str | None = None

    # Sitemap
    SITE_URL: str = "https://dailyworldblog.com"
    SITEMAP_PATH: str = "./sitemap.xml"
    FTP_HOST: str | None = None
    FTP_USER: str | None = None
    FTP_PASS: str | None = None
    FTP_REMOTE_PATH: str = "/public_html/sitemap.xml"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"


# Log settings loading (redact sensitive values)
settings = Settings()
logger.info("[CONFIG] Settings loaded successfully")
logger.info(f"[CONFIG] Mongo URI: {settings.MONGO_URI[:10]}**** (redacted)")
logger.info(f"[CONFIG] JWT Secret: {settings.JWT_SECRET_KEY[:4]}**** (redacted)")
logger.info(f"[CONFIG] DO Spaces Endpoint: {settings.DO_SPACES_ENDPOINT}")
logger.info(f"[CONFIG] DO Spaces Bucket: {settings.DO_SPACES_BUCKET}")
logger.info(f"[CONFIG] SMTP Server: {settings.SMTP_SERVER}")
logger.info(
    f"[CONFIG] Sender Email: {settings.SENDER_EMAIL if settings.SENDER_EMAIL else 'None'}"
)
logger.info(f"[CONFIG] Sitemap FTP upload: {'enabled' if settings.FTP_HOST else 'disabled'}")
