"""Agency workbook -> master workbook synchronization tools."""

__version__ = "0.3.0"
