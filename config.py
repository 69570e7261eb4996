import os
from dotenv import load_dotenv

# Load .env file only in development environment
if os.environ.get('FLASK_ENV') != 'production':
    load_dotenv()


def _split(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'a_very_secret_key_for_dev')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'development')
    FLASK_DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'
    TESTING = False
    PORT = int(os.environ.get('PORT', 8082))

    MONGO_URI = os.environ.get('MONGODB_URI')
    MONGO_DB_NAME = os.environ.get('MONGODB_DB_NAME', 'marketpulse')
    COLLECTIONS = {
        'guardian': os.environ.get('GUARDIAN_COLLECTION', 'guardian_articles'),
        'nytimes': os.environ.get('NYTIMES_COLLECTION', 'nytimes_articles'),
        'reddit': os.environ.get('REDDIT_COLLECTION', 'reddit_posts'),
        'coingecko': os.environ.get('COINGECKO_COLLECTION', 'coingecko_tickers'),
    }

    GUARDIAN_API_KEY = os.environ.get('GUARDIAN_API_KEY')
    NYTIMES_API_KEY = os.environ.get('NYTIMES_API_KEY')
    REDDIT_CLIENT_ID = os.environ.get('REDDIT_CLIENT_ID')
    REDDIT_CLIENT_SECRET = os.environ.get('REDDIT_CLIENT_SECRET')
    REDDIT_USERNAME = os.environ.get('REDDIT_USERNAME')
    REDDIT_PASSWORD = os.environ.get('REDDIT_PASSWORD')
    REDDIT_USER_AGENT = os.environ.get('REDDIT_USER_AGENT', 'marketpulse/0.1')
    REDDIT_SUBREDDITS = _split(os.environ.get('REDDIT_SUBREDDITS', 'CryptoCurrency,Bitcoin,ethereum'))
    COINGECKO_API_KEY = os.environ.get('COINGECKO_API_KEY')

    DEFAULT_QUERY = os.environ.get('DEFAULT_QUERY', 'crypto')
    MAX_PAGES = int(os.environ.get('MAX_PAGES', 10))
    REQUEST_TIMEOUT = float(os.environ.get('REQUEST_TIMEOUT', 15))
    CACHE_TTL_SECONDS = int(os.environ.get('CACHE_TTL_SECONDS', 3600))

    PIPELINE_CRON = os.environ.get('PIPELINE_CRON', '0 * * * *')
    PIPELINE_SOURCES = _split(os.environ.get('PIPELINE_SOURCES', ''))

    @classmethod
    def validate(cls):
        if not cls.MONGO_URI:
            raise ValueError("No MONGODB_URI provided in environment variables")


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    FLASK_ENV = 'production'


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    MONGO_URI = 'mongodb://localhost:27017'
    MONGO_DB_NAME = 'marketpulse_test'
    GUARDIAN_API_KEY = None
    NYTIMES_API_KEY = None
    REDDIT_CLIENT_ID = None
    REDDIT_CLIENT_SECRET = None
    CACHE_TTL_SECONDS = 60
    PIPELINE_SOURCES = []


def get_config():
    env = os.environ.get('FLASK_ENV', 'development')
    if env == 'development':
        return DevelopmentConfig
    if env == 'testing':
        return TestingConfig
    return ProductionConfig
