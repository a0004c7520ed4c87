"""
Configuration defaults for the Blueflood publisher.
"""
import os

# Server configuration
SERVER_URL = os.getenv('BLUEFLOOD_SERVER_URL', '')

# Ingest configuration
ROLLUP_NUM = int(os.getenv('BLUEFLOOD_ROLLUP_NUM', '100'))  # metrics per ingest request
TTL_IN_SECONDS = int(os.getenv('BLUEFLOOD_TTL_IN_SECONDS', '172800'))  # 48 hours

# HTTP client configuration
REQUEST_TIMEOUT = int(os.getenv('BLUEFLOOD_REQUEST_TIMEOUT', '0'))  # seconds, 0 disables the timeout
MAX_WORKERS = int(os.getenv('BLUEFLOOD_MAX_WORKERS', '8'))  # concurrent ingest requests

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
