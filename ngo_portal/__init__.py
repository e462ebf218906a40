"""
NGO Portal - Backend Package

Authentication, session management and role-based access for the
NGO portal: members, hubs, hub leads and administrators.
"""

__version__ = "0.1.0"
