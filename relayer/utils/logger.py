"""
Logging configuration for the relayer.

This module sets up console and rotating file logging, and a separate
audit trail recording every order and offer the relayer accepts.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional


def _ensure_parent_dir(path: str) -> None:
    log_dir = os.path.dirname(path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """
    Set up logging configuration for the relayer.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        _ensure_parent_dir(log_file)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    # Quiet chatty libraries
    logging.getLogger('websockets').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {level}, File: {log_file or 'Console only'}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


AUDIT_LOGGER_NAME = "relayer.audit"


def create_audit_logger(log_file: Optional[str] = "logs/audit.log") -> logging.Logger:
    """
    Create the audit logger.

    Records are pipe-delimited for easy parsing and never propagate to
    the application log.

    Args:
        log_file: Path to audit log file, or None to keep the logger handler-less

    Returns:
        Audit logger instance
    """
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
    audit_logger.setLevel(logging.INFO)
    audit_logger.propagate = False

    if log_file and not audit_logger.handlers:
        _ensure_parent_dir(log_file)
        audit_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=50 * 1024 * 1024,  # 50MB
            backupCount=10
        )
        audit_handler.setFormatter(logging.Formatter('%(asctime)s|%(levelname)s|%(message)s'))
        audit_logger.addHandler(audit_handler)

    return audit_logger


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER_NAME)


def log_order_audit(audit_logger: logging.Logger, action: str, order_data: dict) -> None:
    """
    Log an order action to the audit trail.

    Args:
        audit_logger: Audit logger instance
        action: Action performed (SUBMIT, ACCEPT, REJECT, PERSIST)
        order_data: Order data in wire format
    """
    audit_logger.info(
        f"ORDER_{action}|"
        f"HASH:{order_data.get('orderHash', 'N/A')}|"
        f"POOL:{order_data.get('poolId', 'N/A')}|"
        f"MAKER:{order_data.get('maker', 'N/A')}|"
        f"MAKER_TOKEN:{order_data.get('makerToken', 'N/A')}|"
        f"TAKER_TOKEN:{order_data.get('takerToken', 'N/A')}|"
        f"MAKER_AMOUNT:{order_data.get('makerAmount', 'N/A')}|"
        f"TAKER_AMOUNT:{order_data.get('takerAmount', 'N/A')}"
    )


def log_offer_audit(audit_logger: logging.Logger, offer_kind: str, offer_data: dict) -> None:
    """
    Log an offer submission to the audit trail.

    Args:
        audit_logger: Audit logger instance
        offer_kind: Offer kind value
        offer_data: Offer data in wire format
    """
    audit_logger.info(
        f"OFFER_SUBMIT|"
        f"KIND:{offer_kind}|"
        f"HASH:{offer_data.get('offerHash', 'N/A')}|"
        f"MAKER:{offer_data.get('maker', 'N/A')}|"
        f"POOL:{offer_data.get('poolId', 'N/A')}"
    )
