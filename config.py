"""
Configuration Module
====================
Centralized environment variable loading, validation, and access.
Validates all configuration at startup to fail fast.

Every variable is optional: the back-office runs with demo defaults
when nothing is set. Invalid values raise ConfigurationError.
"""

import os
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path
from dotenv import load_dotenv


# ============================================================================
# LOGGING
# ============================================================================

logger = logging.getLogger(__name__)


# ============================================================================
# ENVIRONMENT LOADING
# ============================================================================

def load_environment():
    """
    Load environment variables from .env file if present.
    Safe to call multiple times.
    """
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
        logger.info("Loaded environment from .env file")
    else:
        logger.debug("No .env file found, using system environment variables")


# Load on module import
load_environment()


# ============================================================================
# CONFIGURATION EXCEPTION
# ============================================================================

class ConfigurationError(Exception):
    """Raised when configuration is invalid."""
    pass


# ============================================================================
# VALIDATION HELPERS
# ============================================================================

def _get_optional_env(key: str, default: str = None) -> Optional[str]:
    """
    Get optional environment variable.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    value = os.getenv(key, default)
    return value.strip() if value else default


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on", "enabled")


def _get_int_env(key: str, default: int = None) -> Optional[int]:
    """
    Get integer environment variable.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Integer value or None

    Raises:
        ConfigurationError: If value is not a valid integer
    """
    value = os.getenv(key)

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid integer value for {key}: {value}"
        )


def _get_float_env(key: str, default: float) -> float:
    value = os.getenv(key)

    if not value:
        return default

    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid number value for {key}: {value}"
        )


# ============================================================================
# CORE CONFIGURATION
# ============================================================================

class CoreConfig:
    """Restaurant-wide business settings."""

    def __init__(self):
        self.restaurant_name = _get_optional_env(
            "RESTAURANT_NAME",
            "RestoMaster Indonesia"
        )

        self.currency = _get_optional_env("CURRENCY", "IDR").upper()

        # PPN charged on dine-in orders only
        self.dine_in_tax_percent = _get_int_env("DINE_IN_TAX_PERCENT", 10)

        if not 0 <= self.dine_in_tax_percent <= 100:
            raise ConfigurationError(
                f"DINE_IN_TAX_PERCENT must be between 0 and 100: "
                f"{self.dine_in_tax_percent}"
            )

        self.low_stock_threshold = _get_int_env("LOW_STOCK_THRESHOLD", 10)
        self.recent_orders_limit = _get_int_env("RECENT_ORDERS_LIMIT", 5)

        if self.low_stock_threshold < 0:
            raise ConfigurationError(
                f"LOW_STOCK_THRESHOLD must not be negative: {self.low_stock_threshold}"
            )

        if self.recent_orders_limit < 1:
            raise ConfigurationError(
                f"RECENT_ORDERS_LIMIT must be at least 1: {self.recent_orders_limit}"
            )


# ============================================================================
# PAYMENT CONFIGURATION
# ============================================================================

class PaymentConfig:
    """Simulated payment terminal settings."""

    def __init__(self):
        self.step_delay_ms = _get_int_env("PAYMENT_STEP_DELAY_MS", 800)

        if self.step_delay_ms < 0:
            raise ConfigurationError(
                f"PAYMENT_STEP_DELAY_MS must not be negative: {self.step_delay_ms}"
            )

    @property
    def step_delay_seconds(self) -> float:
        return self.step_delay_ms / 1000.0


# ============================================================================
# ADVICE (LLM) CONFIGURATION
# ============================================================================

class AdviceConfig:
    """Financial advice LLM configuration."""

    def __init__(self):
        self.llm_provider = _get_optional_env("LLM_PROVIDER", "openai").lower()

        if self.llm_provider not in ["claude", "openai"]:
            raise ConfigurationError(
                f"Invalid LLM_PROVIDER: {self.llm_provider}. "
                f"Must be 'claude' or 'openai'"
            )

        # API key is optional: without one the advisor answers with the failure message
        if self.llm_provider == "claude":
            self.llm_api_key = _get_optional_env("ANTHROPIC_API_KEY")
            self.llm_model = _get_optional_env(
                "CLAUDE_MODEL",
                "claude-sonnet-4-20250514"
            )
        else:  # openai
            self.llm_api_key = _get_optional_env("OPENAI_API_KEY")
            self.llm_model = _get_optional_env(
                "OPENAI_MODEL",
                "gpt-4o-mini"
            )

        self.max_tokens = _get_int_env("LLM_MAX_TOKENS", 1024)
        self.temperature = _get_float_env("LLM_TEMPERATURE", 0.7)

        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"LLM_TEMPERATURE must be between 0.0 and 2.0: {self.temperature}"
            )

        self.language = _get_optional_env("ADVICE_LANGUAGE", "Indonesian")
        self.failure_message = _get_optional_env(
            "ADVICE_FAILURE_MESSAGE",
            "Maaf, gagal menganalisis data saat ini."
        )


# ============================================================================
# FEATURE FLAGS
# ============================================================================

class FeatureFlags:
    """Feature flags for optional functionality."""

    def __init__(self):
        self.enable_advice = _get_bool_env("ENABLE_ADVICE", True)
        self.seed_demo_data = _get_bool_env("SEED_DEMO_DATA", True)
        self.debug_mode = _get_bool_env("DEBUG_MODE", False)


# ============================================================================
# SERVER CONFIGURATION
# ============================================================================

class ServerConfig:
    """Web server configuration."""

    def __init__(self):
        self.host = _get_optional_env("HOST", "0.0.0.0")
        self.port = _get_int_env("PORT", 8000)

        # CORS settings
        self.cors_origins = _get_optional_env("CORS_ORIGINS", "*").split(",")

        # Logging
        self.log_level = _get_optional_env("LOG_LEVEL", "INFO").upper()

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ConfigurationError(
                f"Invalid LOG_LEVEL: {self.log_level}"
            )


# ============================================================================
# MAIN CONFIGURATION CLASS
# ============================================================================

class Config:
    """
    Main configuration container.
    Loads and validates all configuration on initialization.
    """

    def __init__(self):
        """
        Initialize and validate all configuration.

        Raises:
            ConfigurationError: If any configuration value is invalid
        """
        try:
            self.core = CoreConfig()
            self.payment = PaymentConfig()
            self.advice = AdviceConfig()
            self.features = FeatureFlags()
            self.server = ServerConfig()

            if self.features.debug_mode:
                self.server.log_level = "DEBUG"

            logger.info("Configuration loaded and validated successfully")

        except ConfigurationError as e:
            logger.error(f"Configuration error: {str(e)}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error loading configuration: {str(e)}")
            raise ConfigurationError(f"Configuration initialization failed: {str(e)}")

    def get_safe_summary(self) -> Dict[str, Any]:
        """
        Get safe configuration summary (no secrets).

        Returns:
            Dictionary with non-sensitive configuration
        """
        return {
            "restaurant_name": self.core.restaurant_name,
            "currency": self.core.currency,
            "dine_in_tax_percent": self.core.dine_in_tax_percent,
            "payment_step_delay_ms": self.payment.step_delay_ms,
            "llm_provider": self.advice.llm_provider,
            "llm_model": self.advice.llm_model,
            "llm_configured": bool(self.advice.llm_api_key),
            "features": {
                "advice": self.features.enable_advice,
                "seed_demo_data": self.features.seed_demo_data,
                "debug": self.features.debug_mode,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "log_level": self.server.log_level,
            },
        }

    def validate_runtime_dependencies(self) -> List[str]:
        """
        Validate that runtime dependencies are usable.

        Returns:
            List of warnings (empty if all OK)
        """
        warnings = []

        if self.features.enable_advice and not self.advice.llm_api_key:
            warnings.append(
                f"Advice enabled but no API key set for provider "
                f"'{self.advice.llm_provider}'"
            )

        return warnings


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get global configuration instance.
    Initializes on first call.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config

    if _config is None:
        _config = Config()

    return _config


def reload_config() -> Config:
    """
    Reload configuration from environment.
    Useful for testing or dynamic reconfiguration.
    """
    global _config
    load_environment()
    _config = Config()
    logger.info("Configuration reloaded")
    return _config


# ============================================================================
# CONVENIENCE GETTERS
# ============================================================================

def get_dine_in_tax_percent() -> int:
    """Get the dine-in tax percentage."""
    return get_config().core.dine_in_tax_percent


def is_feature_enabled(feature_name: str) -> bool:
    """
    Check if a feature is enabled.

    Args:
        feature_name: Feature flag name

    Returns:
        True if enabled
    """
    features = get_config().features
    return getattr(features, f"enable_{feature_name}", False)


# ============================================================================
# VALIDATION FUNCTION
# ============================================================================

def validate_configuration():
    """
    Validate configuration and log a summary.
    Useful for startup checks.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = get_config()

    summary = config.get_safe_summary()

    logger.info("Configuration Summary:")
    logger.info(f"  Restaurant: {summary['restaurant_name']}")
    logger.info(f"  Currency: {summary['currency']}")
    logger.info(f"  Dine-in tax: {summary['dine_in_tax_percent']}%")
    logger.info(f"  LLM Provider: {summary['llm_provider']} ({summary['llm_model']})")
    logger.info(f"  Server: {summary['server']['host']}:{summary['server']['port']}")
    logger.info(f"  Log Level: {summary['server']['log_level']}")

    logger.info("Feature Flags:")
    for feature, enabled in summary['features'].items():
        status = "enabled" if enabled else "disabled"
        logger.info(f"  {feature}: {status}")

    warnings = config.validate_runtime_dependencies()
    if warnings:
        logger.warning("Configuration warnings:")
        for warning in warnings:
            logger.warning(f"  - {warning}")

    logger.info("Configuration validation complete")
