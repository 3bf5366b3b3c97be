"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Bank ledger configuration"""
    
    # Security configuration
    max_login_attempts: int = 3
    lockout_duration_seconds: int = 300  # 5 minutes
    password_min_length: int = 6
    jwt_secret: str = "change-this-secret-key-in-production"
    access_token_minutes: int = 30
    
    # Business rules configuration
    transaction_history_limit: int = 10
    account_number_prefix: str = "ACC"
    customer_id_prefix: str = "CUST"
    id_start: int = 1000
    
    # Persistence configuration
    data_dir: str = "data"
    max_backups: int = 5
    seed_sample_data: bool = False
    
    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
