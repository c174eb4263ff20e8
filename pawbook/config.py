import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pawbook.db")

# Calendar proxy (create/update/delete endpoints live under this base URL)
CALENDAR_API_URL = os.getenv("CALENDAR_API_URL", "http://localhost:3000/api/calendar")
CALENDAR_TIMEOUT_SECONDS = float(os.getenv("CALENDAR_TIMEOUT_SECONDS", "15"))
CALENDAR_MAX_RETRIES = int(os.getenv("CALENDAR_MAX_RETRIES", "2"))  # Additional attempts
CALENDAR_RETRY_DELAY_SECONDS = float(os.getenv("CALENDAR_RETRY_DELAY_SECONDS", "2"))
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "Europe/London")

# Outbound notification webhooks - unset means notifications are disabled
BOOKING_TERMS_WEBHOOK_URL = os.getenv("BOOKING_TERMS_WEBHOOK_URL")
SESSION_WEBHOOK_URL = os.getenv("SESSION_WEBHOOK_URL")
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))
WEBHOOK_SUPPRESSION_WINDOW_SECONDS = float(os.getenv("WEBHOOK_SUPPRESSION_WINDOW_SECONDS", "5"))
BOOKING_TERMS_URL = os.getenv("BOOKING_TERMS_URL", "https://example.invalid/booking-terms")

# Inbound calendar callback (sessionId + eventId) shared secret
WEBHOOK_CALLBACK_API_KEY = os.getenv("WEBHOOK_CALLBACK_API_KEY")

# Change feed trailing-edge debounce window
CHANGE_FEED_DEBOUNCE_MS = int(os.getenv("CHANGE_FEED_DEBOUNCE_MS", "50"))
