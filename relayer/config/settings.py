"""
Configuration settings for the relayer.

This module provides centralized configuration management
with environment variable support and validation.
"""

import os
from decimal import Decimal
from typing import Optional, Dict, Any, List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _split_chain_urls(value: str) -> Dict[int, str]:
    """Parse "chainId=url" pairs separated by commas."""
    urls = {}
    for item in _split_csv(value):
        chain_id, sep, url = item.partition("=")
        if not sep or not url.strip():
            raise ValueError(f"Invalid chain RPC entry: {item}. Expected chainId=url")
        urls[int(chain_id)] = url.strip()
    return urls


class Settings:
    """
    Configuration settings for the relayer.

    Supports environment variables and provides sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment variables."""
        # Server configuration
        self.rest_host = os.getenv("REST_HOST", "0.0.0.0")
        self.rest_port = int(os.getenv("REST_PORT", "5000"))
        self.websocket_host = os.getenv("WEBSOCKET_HOST", "localhost")
        self.websocket_port = int(os.getenv("WEBSOCKET_PORT", "8765"))

        # Logging configuration
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file = os.getenv("LOG_FILE", "logs/relayer.log")
        self.audit_log_file = os.getenv("AUDIT_LOG_FILE", "logs/audit.log")

        # Storage
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///data/relayer.db")
        # Requested rows per chunk; the store lowers it to fit the bound parameter limit
        self.db_orders_update_chunk_size = int(os.getenv("DB_ORDERS_UPDATE_CHUNK_SIZE", "300"))

        # Order freshness
        self.sra_order_expiration_buffer_seconds = int(
            os.getenv("SRA_ORDER_EXPIRATION_BUFFER_SECONDS", "10")
        )
        self.max_order_expiration_buffer_seconds = int(
            os.getenv("MAX_ORDER_EXPIRATION_BUFFER_SECONDS", "360")
        )

        # Persistent order posting
        self.persistent_order_api_keys = _split_csv(
            os.getenv("SRA_PERSISTENT_ORDER_POSTING_WHITELISTED_API_KEYS", "")
        )

        # Order config served to makers
        self.fee_recipient_addresses = [
            address.lower() for address in _split_csv(
                os.getenv("FEE_RECIPIENT_ADDRESSES", "0xBb0F479895915F80f6fEb5BABcb0Ad39a0D7eF4E")
            )
        ]
        self.order_sender_address = os.getenv(
            "ORDER_SENDER_ADDRESS", "0x0000000000000000000000000000000000000000"
        ).lower()
        self.trading_fee = Decimal(os.getenv("TRADING_FEE", "0.01"))

        # Pool registry (protocol contract reads)
        self.chain_rpc_urls = _split_chain_urls(os.getenv("CHAIN_RPC_URLS", ""))
        self.pool_contract_abi_file = os.getenv("POOL_CONTRACT_ABI_FILE", "")

        # Service execution
        self.service_worker_threads = int(os.getenv("SERVICE_WORKER_THREADS", "4"))

        # WebSocket configuration
        self.websocket_ping_interval = int(os.getenv("WEBSOCKET_PING_INTERVAL", "20"))
        self.websocket_ping_timeout = int(os.getenv("WEBSOCKET_PING_TIMEOUT", "10"))

        # Performance monitoring
        self.enable_performance_monitoring = os.getenv("ENABLE_PERFORMANCE_MONITORING", "true").lower() == "true"

        # Security
        self.enable_cors = os.getenv("ENABLE_CORS", "true").lower() == "true"
        self.cors_origins = os.getenv("CORS_ORIGINS", "*").split(",")

        # Debug mode
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary. API keys are never exposed."""
        return {
            "rest_host": self.rest_host,
            "rest_port": self.rest_port,
            "websocket_host": self.websocket_host,
            "websocket_port": self.websocket_port,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "audit_log_file": self.audit_log_file,
            "database_url": self.database_url,
            "db_orders_update_chunk_size": self.db_orders_update_chunk_size,
            "sra_order_expiration_buffer_seconds": self.sra_order_expiration_buffer_seconds,
            "max_order_expiration_buffer_seconds": self.max_order_expiration_buffer_seconds,
            "persistent_order_api_key_count": len(self.persistent_order_api_keys),
            "service_worker_threads": self.service_worker_threads,
            "fee_recipient_addresses": self.fee_recipient_addresses,
            "order_sender_address": self.order_sender_address,
            "trading_fee": str(self.trading_fee),
            "pool_registry_chains": sorted(self.chain_rpc_urls),
            "pool_contract_abi_file": self.pool_contract_abi_file,
            "websocket_ping_interval": self.websocket_ping_interval,
            "websocket_ping_timeout": self.websocket_ping_timeout,
            "enable_performance_monitoring": self.enable_performance_monitoring,
            "enable_cors": self.enable_cors,
            "cors_origins": self.cors_origins,
            "debug": self.debug,
        }

    def validate(self) -> None:
        """Validate configuration settings."""
        errors = []

        # Validate ports
        if not (1 <= self.rest_port <= 65535):
            errors.append(f"Invalid REST port: {self.rest_port}")

        if not (1 <= self.websocket_port <= 65535):
            errors.append(f"Invalid WebSocket port: {self.websocket_port}")

        if not self.database_url:
            errors.append("Database URL cannot be empty")

        if self.db_orders_update_chunk_size <= 0:
            errors.append(f"DB orders update chunk size must be positive: {self.db_orders_update_chunk_size}")

        if self.sra_order_expiration_buffer_seconds < 0:
            errors.append(
                f"Order expiration buffer cannot be negative: {self.sra_order_expiration_buffer_seconds}"
            )

        if self.max_order_expiration_buffer_seconds < 0:
            errors.append(
                f"Max order expiration buffer cannot be negative: {self.max_order_expiration_buffer_seconds}"
            )

        if self.service_worker_threads <= 0:
            errors.append(f"Service worker threads must be positive: {self.service_worker_threads}")

        if not self.fee_recipient_addresses:
            errors.append("At least one fee recipient address is required")

        if not (0 <= self.trading_fee < 1):
            errors.append(f"Trading fee must be in [0, 1): {self.trading_fee}")

        if self.chain_rpc_urls and not self.pool_contract_abi_file:
            errors.append("POOL_CONTRACT_ABI_FILE is required when CHAIN_RPC_URLS is set")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate()
    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from environment variables.

    Returns:
        New settings instance
    """
    global _settings
    _settings = Settings()
    _settings.validate()
    return _settings
