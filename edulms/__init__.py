"""
EduLMS Backend Package
======================

Flask-based Learning Management System on top of Supabase.

Structure:
- routes/: page and API blueprints
- services/: data access, gradebook, search, notifications
- templates/: HTML pages and email bodies
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
