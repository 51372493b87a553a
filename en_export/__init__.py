"""
Scheduled data export: download an export for a date range and
upload it to SFTP or a SharePoint document library.
"""

__version__ = "1.0.0"
