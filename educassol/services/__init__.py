"""
Backend collaborators: the Supabase tables and storage, and the serverless
grading functions.
"""
from .backend import BackendClient, get_backend
from .edge_functions import EdgeFunctionClient, EdgeFunctionError
from .repository import ExamHasSubmissionsError, NotFoundError
