# booking_engine/config.py

import os

from dotenv import load_dotenv

load_dotenv()


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DB_CONNECT_MAX_RETRIES = int(os.getenv("DB_CONNECT_MAX_RETRIES", "30"))
DB_CONNECT_RETRY_DELAY = float(os.getenv("DB_CONNECT_RETRY_DELAY", "1.5"))

PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "INR").upper()
PAYMENT_GATEWAY_TIMEOUT = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10"))

# Departure dates and times are entered as local wall-clock values.
DEPARTURE_TIMEZONE = os.getenv("DEPARTURE_TIMEZONE", "UTC")


def razorpay_credentials() -> tuple[str | None, str | None]:
    return os.getenv("RAZORPAY_KEY_ID"), os.getenv("RAZORPAY_KEY_SECRET")
