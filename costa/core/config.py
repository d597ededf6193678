"""
Configuration management for the Costa pipeline runner.
"""
import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runner settings with environment variable support."""

    app_name: str = "Costa - Pipeline Script Runner"
    version: str = "2.0.0"

    # Logging
    log_level: str = os.getenv("COSTA_LOG_LEVEL", "INFO")

    # Framework layout, relative to the framework directory
    default_native_package_path: str = os.getenv("COSTA_NATIVE_PACKAGE_PATH", "site-packages")
    default_managed_package_path: str = os.getenv("COSTA_MANAGED_PACKAGE_PATH", "node_modules")
    framework_descriptor_file: str = os.getenv("COSTA_FRAMEWORK_DESCRIPTOR", "framework.json")

    # Prefix of the sys.modules names given to loaded plugin scripts
    script_module_prefix: str = os.getenv("COSTA_SCRIPT_MODULE_PREFIX", "costa_script")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
