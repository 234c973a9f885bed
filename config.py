from dotenv import load_dotenv
import os
import logging

# Configure Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


load_dotenv()

APP_ENV = os.getenv("APP_ENV", "local")
FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "https://work-hub-eight.vercel.app")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "540"))

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CERTS_URL = os.getenv("GOOGLE_CERTS_URL", "https://www.googleapis.com/oauth2/v3/certs")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

SMTP_SERVER = os.getenv("smtp_server")
SMTP_PORT = os.getenv("smtp_port", "465")
SMTP_USER = os.getenv("smtp_user")
SMTP_PASSWORD = os.getenv("smtp_pass")
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "15"))
MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "Incial WorkHub")

OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", "10"))
OTP_CLEANUP_INTERVAL_MINUTES = int(os.getenv("OTP_CLEANUP_INTERVAL_MINUTES", "30"))

DATABASE_URL = os.getenv("DATABASE_URL")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "crm_db")
DB_USERNAME = os.getenv("DB_USERNAME", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "password")

# Origins reachable from a developer machine or the office network; never
# honoured when APP_ENV is production.
LOCAL_NETWORK_ORIGIN_REGEX = (
    r"^http://(localhost|127\.0\.0\.1|192\.168\.\d{1,3}\.\d{1,3}|10\.\d{1,3}\.\d{1,3}\.\d{1,3})(:\d+)?$"
)


def is_production(app_env: str = None) -> bool:
    return (app_env if app_env is not None else APP_ENV).strip().lower() == "production"


def cors_settings(app_env: str = None) -> dict:
    """
    Keyword arguments for CORSMiddleware. Production only admits the published
    frontend; every other environment also admits local-network origins.
    """
    settings = {
        "allow_origins": [FRONTEND_ORIGIN],
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        "allow_headers": ["Authorization", "Content-Type"],
        "expose_headers": ["Authorization"],
    }
    if not is_production(app_env):
        settings["allow_origin_regex"] = LOCAL_NETWORK_ORIGIN_REGEX
    return settings
