"""
fleetexport - driver-based spreadsheet export engine.

Describe sheets and columns once, write them through an interchangeable
backend: openpyxl in memory or streaming mode, or an event-log driver in
tests.
"""

__version__ = "1.0.0"
