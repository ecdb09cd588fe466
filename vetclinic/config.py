import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./vetclinic.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Shared secret for the scheduler hitting /cron/mark-no-show
# Leave unset to disable the HTTP cron trigger entirely (the ARQ cron job still runs)
CRON_SECRET = os.getenv("CRON_SECRET")

# No-show automation
NO_SHOW_GRACE_MINUTES = int(os.getenv("NO_SHOW_GRACE_MINUTES", "15"))
NO_SHOW_SWEEP_INTERVAL_MINUTES = int(os.getenv("NO_SHOW_SWEEP_INTERVAL_MINUTES", "5"))

# Billing
# Days between issue and due date for deferred invoices (0 = due on issue, POS default)
INVOICE_DUE_DAYS = int(os.getenv("INVOICE_DUE_DAYS", "0"))

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
