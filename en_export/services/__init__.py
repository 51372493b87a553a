"""
Services for the export job: download, upload, notification,
orchestration and scheduling.
"""
