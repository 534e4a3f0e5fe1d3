"""
Educa Sol Assessment Domain
===========================

Models and pure rules for automated exam grading:
- rubric: rubric schema and validation
- exam: exam records and create/update payloads
- grading_result: AI grading output and teacher overrides
- override: score reconciliation (AI score vs teacher override)
- submissions: dashboard aggregation, filtering, realtime merge
- file_validation / storage_path: upload gate and storage layout
- access_control: ownership and role checks
- export / verification: reports and public grade verification

Usage:
    from educassol.assessment import calculate_final_score, apply_override
"""
from .rubric import Rubric, RubricQuestion, build_rubric, validate_rubric
from .exam import Exam, ExamCreate, ExamUpdate
from .grading_result import (
    GradingResult,
    HandwritingQuality,
    QuestionOverride,
    QuestionResult,
    StudentMetadata,
    deserialize_grading_result,
    parse_grading_result,
    serialize_grading_result,
    to_ai_output,
)
from .override import (
    apply_override,
    calculate_final_score,
    clear_override,
    count_overrides,
    create_override,
    get_effective_score,
    get_override,
    has_override,
    sync_total_score,
)
from .submissions import (
    Submission,
    SubmissionEvent,
    SubmissionFilters,
    SubmissionStats,
    aggregate_submission_stats,
    apply_submission_event,
    average_graded_score,
    filter_submissions,
    has_active_filters,
)
from .file_validation import validate_file, validate_file_size, validate_file_type
from .storage_path import StoragePathError, generate_storage_path, parse_storage_path
from .access_control import (
    AccessCheckResult,
    AccessController,
    ExamAccessContext,
    ResultAccessContext,
    SubmissionAccessContext,
    UserContext,
)

__all__ = [
    'Rubric', 'RubricQuestion', 'build_rubric', 'validate_rubric',
    'Exam', 'ExamCreate', 'ExamUpdate',
    'GradingResult', 'HandwritingQuality', 'QuestionOverride', 'QuestionResult',
    'StudentMetadata', 'deserialize_grading_result', 'parse_grading_result',
    'serialize_grading_result', 'to_ai_output',
    'apply_override', 'calculate_final_score', 'clear_override', 'count_overrides',
    'create_override', 'get_effective_score', 'get_override', 'has_override',
    'sync_total_score',
    'Submission', 'SubmissionEvent', 'SubmissionFilters', 'SubmissionStats',
    'aggregate_submission_stats', 'apply_submission_event', 'average_graded_score',
    'filter_submissions', 'has_active_filters',
    'validate_file', 'validate_file_size', 'validate_file_type',
    'StoragePathError', 'generate_storage_path', 'parse_storage_path',
    'AccessCheckResult', 'AccessController', 'ExamAccessContext',
    'ResultAccessContext', 'SubmissionAccessContext', 'UserContext',
]
