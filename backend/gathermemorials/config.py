import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SLOW_REQUEST_THRESHOLD_MS = int(os.getenv("SLOW_REQUEST_THRESHOLD_MS", "1000"))

    # Auth
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("JWT_ACCESS_MINUTES", "60")))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_REFRESH_DAYS", "30")))

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_STRATEGY = "moving-window"
    RATELIMIT_HEADERS_ENABLED = True
    GUESTBOOK_RATE_LIMIT = os.getenv("GUESTBOOK_RATE_LIMIT", "5 per minute")
    AUTOSAVE_RATE_LIMIT = os.getenv("AUTOSAVE_RATE_LIMIT", "1 per second")

    GUESTBOOK_MAX_MESSAGE_LENGTH = int(os.getenv("GUESTBOOK_MAX_MESSAGE_LENGTH", "500"))

    APP_URL = os.getenv("APP_URL", "http://localhost:3000")

    # Payments
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_MEMORIAL_PRICE_ID = os.getenv("STRIPE_MEMORIAL_PRICE_ID", "price_memorial_149")
    MEMORIAL_PRODUCT_NAME = "Digital Memorial"
    MEMORIAL_PRICE_CENTS = int(os.getenv("MEMORIAL_PRICE_CENTS", "14900"))
    MEMORIAL_CURRENCY = os.getenv("MEMORIAL_CURRENCY", "usd")

    # Media CDN
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

    # Email
    SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
    MAIL_FROM_EMAIL = os.getenv("MAIL_FROM_EMAIL", "notifications@gathermemorials.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "GatherMemorials")

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///gathermemorials.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    RATELIMIT_STORAGE_URI = "memory://"
    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = None
    CLOUDINARY_CLOUD_NAME = None
    CLOUDINARY_API_KEY = None
    CLOUDINARY_API_SECRET = None
    SENDGRID_API_KEY = None

class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")

config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig
}
