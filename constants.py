import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

JWT_SECRET = os.getenv("JWT_SECRET", "default_secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRY_SECONDS = int(os.getenv("JWT_EXPIRY_SECONDS", 7200))  # 2h

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))
GENERATED_PASSWORD_LENGTH = 8

REQUIRE_ADMIN_TOKEN = os.getenv("REQUIRE_ADMIN_TOKEN", "true").lower() in ("1", "true", "yes")

EMAILJS_URL = os.getenv("EMAILJS_URL", "https://api.emailjs.com/api/v1.0/email/send")
EMAILJS_SERVICE_ID = os.getenv("EMAILJS_SERVICE_ID", None)
EMAILJS_TEMPLATE_ID = os.getenv("EMAILJS_TEMPLATE_ID", None)
EMAILJS_PUBLIC_KEY = os.getenv("EMAILJS_PUBLIC_KEY", None)
EMAILJS_PRIVATE_KEY = os.getenv("EMAILJS_PRIVATE_KEY", None)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5013))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")
