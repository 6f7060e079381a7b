import logging
import os
import re
from logging.handlers import RotatingFileHandler

import colorlog

# Credential query parameters: token, salt and legacy password
_CREDENTIAL_PARAM = re.compile(r"(?<=[?&])([tsp])=[^&\s\"']*")


def redact_credentials(text: str) -> str:
    """Replace t, s and p query values in ``text`` with ***."""
    return _CREDENTIAL_PARAM.sub(r"\1=***", text)


class CredentialRedactingFilter(logging.Filter):
    """Scrub credential query parameters from log records.

    httpx logs every request URL at INFO level, and Subsonic URLs carry the
    token and salt (or the plaintext password for old servers).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_credentials(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging() -> None:
    """Configure the centralised logging settings.

    Reads SUBSONIC_LOG_LEVEL (default INFO), SUBSONIC_LOG_FILE,
    LOG_FILE_MAX_BYTES and LOG_FILE_BACKUP_COUNT. Intended to be called once
    by the application using the library; importing the library configures
    nothing.
    """
    log_level = os.getenv('SUBSONIC_LOG_LEVEL', 'INFO').upper()
    log_file = os.getenv('SUBSONIC_LOG_FILE')
    max_bytes = int(os.getenv('LOG_FILE_MAX_BYTES', '10485760'))  # 10 MB
    backup_count = int(os.getenv('LOG_FILE_BACKUP_COUNT', '5'))

    logger = logging.getLogger()
    logger.setLevel(log_level)

    if not logger.hasHandlers():
        redacting_filter = CredentialRedactingFilter()

        console_handler = logging.StreamHandler()
        console_formatter = colorlog.ColoredFormatter(
            "%(log_color)s%(levelname)s:%(name)s:%(message)s",
            log_colors={
                'DEBUG': 'bold_blue',
                'INFO': 'bold_green',
                'WARNING': 'bold_yellow',
                'ERROR': 'bold_red',
                'CRITICAL': 'bold_purple'
            }
        )
        console_handler.setFormatter(console_formatter)
        console_handler.addFilter(redacting_filter)
        logger.addHandler(console_handler)

        # Add file handler if SUBSONIC_LOG_FILE is specified
        if log_file:
            file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s - (%(filename)s:%(lineno)d)'
            )
            file_handler.setFormatter(file_formatter)
            file_handler.addFilter(redacting_filter)
            logger.addHandler(file_handler)
