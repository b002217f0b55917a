"""KCD - version and unit constants.

Keep this module tiny and dependency-free. It is imported by the models,
the drawing engine and the encoders and must not have side effects.
"""

APP_NAME = "KeycapDraw"

APP_VERSION = "0.1.0"

# Geometry (in millimeters)
# NOTE: 1u = 0.75in. Every key-unit <-> mm conversion goes through this.
UNIT_MM = 19.05
MM_PER_INCH = 25.4
PT_PER_INCH = 72.0

# Export defaults
DEFAULT_PPI = 96.0
DEFAULT_OUTLINE_WIDTH_MM = 0.25
