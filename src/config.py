"""
Configuration from environment. No hardcoded secrets.
Copy .env.example to .env at project root. Default DB is local MySQL database 'wexdb'.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (parent of src)
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

PORT = int(os.environ.get("PORT", "3000"))
NODE_ENV = os.environ.get("NODE_ENV", "development")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

MYSQL = {
    "host": os.environ.get("MYSQL_HOST", "localhost"),
    "port": int(os.environ.get("MYSQL_PORT", "3306")),
    "user": os.environ.get("MYSQL_USER", "root"),
    "password": os.environ.get("MYSQL_PASSWORD", ""),
    "database": os.environ.get("MYSQL_DATABASE", "wexdb"),
    "charset": os.environ.get("MYSQL_CHARSET", "utf8mb4"),
}

# Replaces {name} tokens in SQL text with TABLE_PREFIX + name
TABLE_PREFIX = os.environ.get("TABLE_PREFIX", "")
