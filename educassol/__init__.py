"""
Educa Sol Backend Package
=========================

Flask-based backend for the Educa Sol teacher tools: exams, rubrics,
submission uploads and review of AI-assisted grading.

Structure:
- assessment/: Grading domain models and pure rules (overrides, filters, access)
- services/: Supabase data access, serverless function client, uploads, realtime
- routes/: API route blueprints
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
