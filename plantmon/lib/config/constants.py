"""Shared constants for the configuration module.

These constants are separated to avoid circular imports between settings.py
and the modules that consume them.
"""

# Calibration of the capacitive soil sensor on the 12-bit ADC:
# the raw value grows as the soil dries out
DEFAULT_RAW_LOWER_BOUND = 1491  # sensor in water
DEFAULT_RAW_UPPER_BOUND = 3624  # sensor in dry air
DEFAULT_RAW_NOISE_MARGIN = 100

DEFAULT_MOVING_AVERAGE_LEN = 5

# No reading for an hour means the sensor or its uplink is down
DEFAULT_WATCHDOG_TIMEOUT_SEC = 3600

# Remind every 4 hours while the soil is dry
DEFAULT_LOW_REMINDER_SEC = 4 * 60 * 60
