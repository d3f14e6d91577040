"""
Configuration management for the EduLMS backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Base paths
BASE_DIR = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent

# Load environment variables
load_dotenv(BASE_DIR / '.env')

# Supabase (auth, tables, storage)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "lms-files")

# Outgoing mail
MAIL_TRANSPORT = os.getenv("MAIL_TRANSPORT", "resend")  # resend | smtp
MAIL_FROM = os.getenv("MAIL_FROM", "EduLMS <noreply@edulms.com>")
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")

# Server configuration
HOST = "0.0.0.0"
PORT = int(os.getenv("PORT", "5000"))
DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"
APP_URL = os.getenv("APP_URL", "http://localhost:5000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Application limits
PAGE_SIZE = 20
SEARCH_LIMIT = 10
MAX_UPLOAD_MB = 10
MAX_AVATAR_MB = 5
REMINDER_WINDOW_HOURS = 24


class Config:
    """Application configuration class."""

    def __init__(self):
        self.supabase_url = SUPABASE_URL
        self.supabase_key = SUPABASE_SERVICE_KEY
        self.supabase_anon_key = SUPABASE_ANON_KEY or SUPABASE_SERVICE_KEY
        self.supabase_jwt_secret = SUPABASE_JWT_SECRET
        self.storage_bucket = STORAGE_BUCKET
        self.secret_key = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
        self.webhook_secret = os.getenv("WEBHOOK_SECRET", "")
        self.app_url = APP_URL
        self.mail_transport = MAIL_TRANSPORT
        self.mail_from = MAIL_FROM
        self.resend_api_key = RESEND_API_KEY
        self.smtp_host = SMTP_HOST
        self.smtp_port = SMTP_PORT
        self.smtp_user = SMTP_USER
        self.smtp_password = SMTP_PASSWORD
        self.page_size = PAGE_SIZE
        self.search_limit = SEARCH_LIMIT
        self.max_upload_mb = MAX_UPLOAD_MB
        self.max_avatar_mb = MAX_AVATAR_MB
        self.reminder_window_hours = REMINDER_WINDOW_HOURS
        self.log_level = LOG_LEVEL

    def to_flask(self):
        """Settings Flask itself reads from app.config."""
        return {
            "SECRET_KEY": self.secret_key,
            "MAX_CONTENT_LENGTH": (self.max_upload_mb + 1) * 1024 * 1024,
        }


# Global config instance
config = Config()
