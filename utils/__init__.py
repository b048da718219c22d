"""Utilities for the authentication core."""

from .utils import (
    setup_logging,
    save_results,
    PerformanceMonitor,
    create_performance_report,
    get_system_info,
    generate_session_id,
    format_duration,
)
from .session_store import SessionStore, SessionRecord

__all__ = [
    'setup_logging',
    'save_results',
    'PerformanceMonitor',
    'create_performance_report',
    'get_system_info',
    'generate_session_id',
    'format_duration',
    'SessionStore',
    'SessionRecord',
]
