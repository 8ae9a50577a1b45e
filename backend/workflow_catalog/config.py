# workflow_catalog/config.py
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """Application configuration using Pydantic settings"""
    
    # App Info
    APP_NAME: str = "Workflow Catalog"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    
    # Database
    DATABASE_URL: str = "sqlite:///./data/catalog.db"
    
    # Import pipeline
    DEFAULT_IMPORT_TAG: str = "internetsourced"
    MAX_TAG_LENGTH: int = 50
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MB per workflow file
    ALLOWED_EXTENSIONS: List[str] = [".json"]
    
    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",  # Vite default
    ]
    
    # Analyzer
    ANALYZER_MODE: str = "openai"  # "openai" or "basic"
    ANALYZER_FALLBACK_TO_BASIC: bool = True
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TEMPERATURE: float = 0.3
    OPENAI_TIMEOUT: float = 60.0
    
    # Logging
    LOG_DIR: str = "./logs"
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True

# Singleton instance
settings = Settings()
