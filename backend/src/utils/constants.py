"""Shared constants for the GreenGrid backend."""

# Identifier prefixes per entity, followed by "_" and a ULID
REPORT_ID_PREFIX = "EMR"
ROUTE_ID_PREFIX = "R"
NOTIFICATION_ID_PREFIX = "N"
FEEDBACK_ID_PREFIX = "F"
CONTACT_ID_PREFIX = "C"
USER_ID_PREFIX = "U"

# Realtime channel and event names
ADMIN_CHANNEL = "admin"
USER_CHANNEL_PREFIX = "user:"

EVENT_NEW_REPORT = "new-report"
EVENT_URGENT_ALERT = "urgent-alert"
EVENT_DASHBOARD_UPDATE = "dashboard-update"
EVENT_REPORT_STATUS = "report-status"

# Image upload limits
MAX_IMAGES_PER_UPLOAD = 5
MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_IMAGE_DIMENSION = 1200
IMAGE_JPEG_QUALITY = 85

# Message returned for any request missing a required field
MISSING_FIELDS_MESSAGE = "Missing required fields"
