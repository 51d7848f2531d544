"""Application-wide constants for the FinSage platform."""

from __future__ import annotations

BRAND_NAME = "FinSage"

# Gateway
DEFAULT_CURRENCY = "INR"
CURRENCY_SUBUNITS = 100  # paise per rupee
PAYMENT_METHOD_RAZORPAY = "razorpay"

# Conversations
GENERAL_CONTEXT_KEY = "general"
MAX_MESSAGE_LENGTH = 5000
LEGACY_COURSE_TAG_PREFIX = "[Course: "

# Sessions
DEFAULT_SESSION_DURATION_MINUTES = 60

# Credit requests
MAX_CREDIT_REQUEST_AMOUNT = 1000
MAX_REASON_LENGTH = 2000

# Query limits
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500

# Change feed
CONVERSATION_CHANNEL_PREFIX = "conversation"
SSE_HEARTBEAT_INTERVAL = 15  # seconds
