"""Configuration module for the POS register application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')

    # Database (catalog lookup / stock decrement)
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///pos_register.db')
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    AUTO_CREATE_TABLES = os.getenv('AUTO_CREATE_TABLES', 'true').lower() == 'true'

    # Register
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'My Store')
    CURRENCY = os.getenv('CURRENCY', 'INR')
    WALK_IN_CUSTOMER_NAME = os.getenv('WALK_IN_CUSTOMER_NAME', 'Walk-in Customer')

    # Payment gateway (Razorpay orders API)
    RAZORPAY_KEY_ID = os.getenv('RAZORPAY_KEY_ID')
    RAZORPAY_KEY_SECRET = os.getenv('RAZORPAY_KEY_SECRET')
    RAZORPAY_BASE_URL = os.getenv('RAZORPAY_BASE_URL', 'https://api.razorpay.com')
    GATEWAY_TIMEOUT = int(os.getenv('GATEWAY_TIMEOUT', '10'))  # seconds

    # Held sales: 'memory' (process-local) or 'redis'
    HELD_SALES_BACKEND = os.getenv('HELD_SALES_BACKEND', 'memory')
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    HELD_SALES_KEY_PREFIX = os.getenv('HELD_SALES_KEY_PREFIX', 'pos')
    HELD_SALE_TTL = int(os.getenv('HELD_SALE_TTL', str(12 * 3600)))  # seconds

    # Error tracking
    SENTRY_DSN = os.getenv('SENTRY_DSN')


class TestConfig(Config):
    """Configuration used by the test-suite."""

    TESTING = True
    DEBUG = False
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    AUTO_CREATE_TABLES = True
    HELD_SALES_BACKEND = 'memory'
    RAZORPAY_KEY_ID = None
    RAZORPAY_KEY_SECRET = None
    SENTRY_DSN = None
