"""
Constants for service identity and role values
"""

SERVICE_NAME = "geoattend-backend"

# Role constants (carried in the bearer token's "role" claim)
ROLE_EMPLOYEE = "EMPLOYEE"
ROLE_ADMIN = "ADMIN"

# Position error codes reported by clients when the device could not produce a fix
POSITION_ERROR_PERMISSION_DENIED = "PERMISSION_DENIED"
POSITION_ERROR_UNAVAILABLE = "POSITION_UNAVAILABLE"
POSITION_ERROR_TIMEOUT = "TIMEOUT"
