"""
LMS catalog service: exam-question catalog and stage-category management
over MongoDB, with an async API client and admin dashboards.
"""

__version__ = "1.0.0"
