# config.py
import os


class Config:
    DEBUG = False
    TESTING = False
    # JSON file merged into app.config; relative paths are anchored at the project root
    CONFIG_JSON = os.getenv("ORDER_RECORDS_CONFIG", "config.json")


class ProductionConfig(Config):
    pass


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    CONFIG_JSON = "config.json"
