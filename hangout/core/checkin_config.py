import os

# --------------------------------------------------
# GEOFENCE
# --------------------------------------------------

# 1 mile. Check-ins further than this from the event anchor are soft-rejected
CHECKIN_RADIUS_KM = float(os.getenv("CHECKIN_RADIUS_KM", "1.60934"))

# "radius" (haversine distance against CHECKIN_RADIUS_KM) or "degree_box"
GEOFENCE_MODE = os.getenv("GEOFENCE_MODE", "radius")
GEOFENCE_MODES = ("radius", "degree_box")

# Low-precision alternative (degree box around the anchor)
DEGREE_BOX_DELTA = 0.005

KM_PER_MILE = 1.60934

# --------------------------------------------------
# EXPIRY SWEEP
# --------------------------------------------------

# How often the sweep runs; also the "just expired" lookback window
EXPIRY_SWEEP_SECONDS = float(os.getenv("EXPIRY_SWEEP_SECONDS", "5"))

FORCE_CHECKOUT_MESSAGE = "This event has ended"

# --------------------------------------------------
# DAILY AUTO-CHECKOUT
# --------------------------------------------------

AUTO_CHECKOUT_HOUR = int(os.getenv("AUTO_CHECKOUT_HOUR", "2"))
AUTO_CHECKOUT_MINUTE = 0

AUTO_CHECKOUT_MESSAGE = "Everyone has been checked out for the night"

# --------------------------------------------------
# FEEDBACK
# --------------------------------------------------

FEEDBACK_TTL_DAYS = int(os.getenv("FEEDBACK_TTL_DAYS", "7"))

# --------------------------------------------------
# DISCOVERY
# --------------------------------------------------

NEARBY_EVENTS_RADIUS_KM = 10.0
