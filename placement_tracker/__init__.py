"""
Student Placement Tracker
Role-based student registration and overseas employment tracking.

Architecture:
- PostgreSQL: users, students, companies, placements
- Permission table: every route checks the caller's role before touching data
- Vision model: reads scanned registration forms (never writes to the database)
"""

__version__ = "1.0.0"
