"""
Audit logging for Educa Sol.

Access denials and grade changes are appended to a local log so they can be
reviewed later. Entries carry identifiers only, never student answers.
"""
import logging
from datetime import datetime

from .config import get_settings

logger = logging.getLogger(__name__)


def _log_path():
    return get_settings().audit_log_file


def audit_log(action: str, details: str = "", user: str = "anonymous"):
    """Append an audit entry and mirror it to the application log."""
    logger.info("AUDIT %s | %s | %s", user, action, details)
    try:
        timestamp = datetime.now().isoformat()
        log_entry = f"{timestamp} | {user} | {action} | {details}\n"

        with open(_log_path(), 'a', encoding='utf-8') as f:
            f.write(log_entry)
    except OSError as e:
        logger.error("Audit log write failed: %s", e)


def get_audit_logs(limit: int = 100):
    """Retrieve recent audit log entries, newest first."""
    try:
        with open(_log_path(), 'r', encoding='utf-8') as f:
            lines = f.readlines()
    except FileNotFoundError:
        return []

    recent = lines[-limit:] if len(lines) > limit else lines
    logs = []
    for line in recent:
        parts = line.strip().split(' | ', 3)
        if len(parts) >= 4:
            logs.append({
                'timestamp': parts[0],
                'user': parts[1],
                'action': parts[2],
                'details': parts[3],
            })
    return logs[::-1]
