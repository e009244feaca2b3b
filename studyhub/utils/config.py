import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_USER = os.getenv("DATABASE_USER")
DATABASE_PASSWORD = os.getenv("DATABASE_PASSWORD")

_password_encoded = quote_plus(DATABASE_PASSWORD) if DATABASE_PASSWORD else ""
db_connection_string = f'postgresql://{DATABASE_USER}:{_password_encoded}@{DATABASE_URL}'

DB_POOL_MIN_SIZE: int = int(os.getenv("DB_POOL_MIN_SIZE", "5"))
DB_POOL_MAX_SIZE: int = int(os.getenv("DB_POOL_MAX_SIZE", "20"))

REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
REDIS_USER: str = os.getenv("REDIS_USER", "")
REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")

JWT_SECRET: str = os.getenv("JWT_SECRET", "")

# "postgres" or "memory"
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "postgres").lower()

# "s3" or "memory"
BLOB_BACKEND: str = os.getenv("BLOB_BACKEND", "s3").lower()

S3_BUCKET_NAME: str = os.getenv("S3_BUCKET_NAME", "chat-files")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
S3_ENDPOINT_URL: str = os.getenv("S3_ENDPOINT_URL", "")
BLOB_PUBLIC_BASE_URL: str = os.getenv("BLOB_PUBLIC_BASE_URL", "")

MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024)))

DEV_MODE: bool = bool(int(os.getenv("DEV_MODE", "0")))

APP_PORT: int = int(os.getenv("APP_PORT", "8500"))
