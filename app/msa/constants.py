"""
Central constants for the MSA Properties application.
"""
from __future__ import annotations

from datetime import timedelta

# Admin session record (one per browser)
ADMIN_SESSION_KEY = "msa_admin_session"
# Signed-cookie key naming the browser's blob when records live in Storage
ADMIN_SESSION_ID_KEY = "msa_admin_sid"
ADMIN_ROLE = "admin"
ADMIN_SESSION_TTL = timedelta(hours=24)

# Listing availability values
AVAILABILITY_STATUSES = ("available", "occupied", "maintenance", "sold")

# Application workflow
APPLICATION_STATUSES = ("submitted", "under_review", "approved", "rejected")

# Feature flags, in display order
FEATURE_FLAG_NAMES = (
    "quick_toggle_sold",
    "bulk_property_actions",
    "advanced_property_filters",
    "property_analytics",
    "admin_notifications",
    "property_comparison",
    "saved_searches",
    "virtual_tours",
    "lazy_load_images",
    "infinite_scroll",
)

DEFAULT_FEATURE_FLAGS = {
    # Property management
    "quick_toggle_sold": True,
    "bulk_property_actions": False,
    "advanced_property_filters": False,
    # Admin
    "property_analytics": True,
    "admin_notifications": True,
    # Visitor experience
    "property_comparison": False,
    "saved_searches": False,
    "virtual_tours": False,
    # Performance
    "lazy_load_images": True,
    "infinite_scroll": False,
}

# Experimental features switched on when ENV=development
DEVELOPMENT_FEATURE_FLAGS = {
    "bulk_property_actions": True,
    "advanced_property_filters": True,
    "property_comparison": True,
}

# Flag name -> environment variable that overrides it ("true" enables)
FEATURE_FLAG_ENV_VARS = {
    "quick_toggle_sold": "FEATURE_QUICK_TOGGLE_SOLD",
    "property_analytics": "FEATURE_PROPERTY_ANALYTICS",
    "bulk_property_actions": "FEATURE_BULK_ACTIONS",
}
