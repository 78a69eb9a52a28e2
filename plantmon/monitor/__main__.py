"""Soil-moisture monitor entrypoint.

Reads raw moisture values from the sensor board via USB serial, assigns a
moisture level to each reading and queues notifications when the level
changes, while the plant stays in a level that asks for reminders, or when
the sensor goes quiet.

Usage: python -m plantmon.monitor
"""

from plantmon.monitor.reader import main

if __name__ == "__main__":
    main()
