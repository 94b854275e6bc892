import os
from datetime import timedelta


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///ledgerdesk.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 'sql' keeps documents in the database, 'local' in a JSON blob store
    RECORD_STORE = os.environ.get('RECORD_STORE', 'sql')
    LOCAL_STORE_PATH = os.environ.get('LOCAL_STORE_PATH')
    RECORD_STORE_MAX_RETRIES = int(os.environ.get('RECORD_STORE_MAX_RETRIES', 3))
    RECORD_STORE_RETRY_BACKOFF = float(os.environ.get('RECORD_STORE_RETRY_BACKOFF', 0.2))

    # 'year_month' or the legacy 'month' bucketing for the dashboard trend
    DASHBOARD_TREND_BUCKETING = os.environ.get('DASHBOARD_TREND_BUCKETING', 'year_month')
    BUSINESS_TIMEZONE = os.environ.get('BUSINESS_TIMEZONE', 'Asia/Kolkata')

    DEFAULT_PAGE_SIZE = 24


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RECORD_STORE_RETRY_BACKOFF = 0
