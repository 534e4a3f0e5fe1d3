"""
Configuration management for the Educa Sol backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv
from flask import current_app, has_app_context

# Load environment variables
load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent

# Local data
HOME_DIR = Path.home()
AUDIT_LOG_FILE = os.getenv("EDUCASSOL_AUDIT_LOG", str(HOME_DIR / ".educassol_audit.log"))

# Supabase
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")

# Serverless functions (upload-exam, analyze-exam, generate-report)
FUNCTIONS_URL = os.getenv(
    "SUPABASE_FUNCTIONS_URL",
    SUPABASE_URL.rstrip("/") + "/functions/v1" if SUPABASE_URL else "",
)
REQUEST_TIMEOUT = int(os.getenv("EDUCASSOL_REQUEST_TIMEOUT", "120"))

# Storage
SUBMISSIONS_BUCKET = os.getenv("EDUCASSOL_SUBMISSIONS_BUCKET", "raw-exams")
SIGNED_URL_TTL_SECONDS = 3600

# Server configuration
HOST = "0.0.0.0"
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("FLASK_DEBUG", "0") == "1"

# Upload limits
ALLOWED_MIME_TYPES = ('application/pdf', 'image/jpeg', 'image/png')
MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024  # 10MB


class Config:
    """Application configuration class."""

    def __init__(self, **overrides):
        self.supabase_url = SUPABASE_URL
        self.supabase_anon_key = SUPABASE_ANON_KEY
        self.supabase_service_key = SUPABASE_SERVICE_KEY
        self.jwt_secret = SUPABASE_JWT_SECRET
        self.functions_url = FUNCTIONS_URL
        self.request_timeout = REQUEST_TIMEOUT
        self.submissions_bucket = SUBMISSIONS_BUCKET
        self.audit_log_file = AUDIT_LOG_FILE
        self.max_file_size_bytes = MAX_FILE_SIZE_BYTES
        self.signed_url_ttl_seconds = SIGNED_URL_TTL_SECONDS
        self.update(overrides)

    def to_dict(self):
        return {
            "supabase_url": self.supabase_url,
            "functions_url": self.functions_url,
            "request_timeout": self.request_timeout,
            "submissions_bucket": self.submissions_bucket,
            "audit_log_file": self.audit_log_file,
            "max_file_size_bytes": self.max_file_size_bytes,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()


def get_settings():
    """Settings of the running app; the global instance outside an app context."""
    if has_app_context():
        return current_app.config.get('EDUCASSOL_SETTINGS', config)
    return config
