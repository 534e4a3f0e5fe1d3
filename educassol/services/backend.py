"""
BackendClient: the one handle the app holds on Supabase and the serverless
functions. Built by ``create_app`` and closed by ``shutdown_app``.
"""
import logging

from flask import current_app

from ..config import config
from .edge_functions import EdgeFunctionClient

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'educassol'


class BackendClient:

    def __init__(self, supabase=None, functions=None, settings=None):
        self.settings = settings or config
        self._supabase = supabase
        self.functions = functions or EdgeFunctionClient(
            self.settings.functions_url, timeout=self.settings.request_timeout
        )

    @property
    def supabase(self):
        """Supabase client with the service key, created on first use."""
        if self._supabase is None:
            from supabase import create_client
            url = self.settings.supabase_url
            key = self.settings.supabase_service_key
            if not url or not key:
                raise RuntimeError(
                    "Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_SERVICE_KEY in .env"
                )
            self._supabase = create_client(url, key)
        return self._supabase

    def table(self, name):
        return self.supabase.table(name)

    @property
    def storage(self):
        return self.supabase.storage

    @property
    def bucket(self):
        return self.settings.submissions_bucket

    def close(self):
        self.functions.close()
        self._supabase = None
        logger.info("Backend client closed")


def get_backend() -> BackendClient:
    """The BackendClient of the running app."""
    return current_app.extensions[EXTENSION_KEY]
