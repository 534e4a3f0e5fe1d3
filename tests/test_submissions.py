"""
Test: Submission aggregation, filtering and realtime merge.
"""
import logging

import pytest

from educassol.assessment.submissions import (
    Submission,
    SubmissionEvent,
    SubmissionFilters,
    aggregate_submission_stats,
    apply_submission_event,
    average_graded_score,
    filter_submissions,
    has_active_filters,
)


def _sub(sub_id, status, score=None, student=None, exam_id="exam-1"):
    row = {"id": sub_id, "exam_id": exam_id, "status": status, "student_identifier": student}
    if score is not None:
        row["results"] = [{"id": f"res-{sub_id}", "total_score": score}]
    return Submission.model_validate(row)


@pytest.fixture
def submissions():
    return [
        _sub("s1", "graded", 85, "Ana Souza"),
        _sub("s2", "graded", 65, "Bruno Lima"),
        _sub("s3", "processing", None, "Carla Dias"),
        _sub("s4", "failed", None, None),
        _sub("s5", "uploaded", None, "ana paula", exam_id="exam-2"),
    ]


class TestSubmissionModel:
    def test_embedded_result_list_unwrapped(self):
        sub = _sub("s1", "graded", 70)
        assert sub.result.id == "res-s1"
        assert sub.score == 70

    def test_empty_result_list_is_none(self):
        sub = Submission.model_validate({"id": "s1", "exam_id": "e", "results": []})
        assert sub.result is None
        assert sub.score is None


class TestAggregateSubmissionStats:
    def test_counts_per_exam(self, submissions):
        stats = aggregate_submission_stats(submissions)
        assert stats["exam-1"].graded == 2
        assert stats["exam-1"].processing == 1
        assert stats["exam-1"].failed == 1
        assert stats["exam-1"].total == 4
        assert stats["exam-2"].uploaded == 1
        assert stats["exam-2"].total == 1

    def test_buckets_sum_to_total(self, submissions):
        for s in aggregate_submission_stats(submissions).values():
            assert s.uploaded + s.processing + s.graded + s.failed == s.total

    def test_total_matches_input_size(self, submissions):
        stats = aggregate_submission_stats(submissions)
        assert sum(s.total for s in stats.values()) == len(submissions)

    def test_unknown_status_counted_in_total_only(self, caplog):
        rows = [{"exam_id": "e", "status": "queued"}, {"exam_id": "e", "status": "graded"}]
        with caplog.at_level(logging.WARNING):
            stats = aggregate_submission_stats(rows)
        assert stats["e"].total == 2
        assert stats["e"].graded == 1
        assert "unrecognized status" in caplog.text

    def test_empty(self):
        assert aggregate_submission_stats([]) == {}


class TestFilterSubmissions:
    def test_default_filters_are_identity(self, submissions):
        assert filter_submissions(submissions) == submissions
        assert filter_submissions(submissions, SubmissionFilters()) == submissions

    def test_blank_search_is_not_active(self):
        assert not has_active_filters(SubmissionFilters(search_term="   "))
        assert has_active_filters(SubmissionFilters(min_score=0))

    def test_graded_range_excludes_low_score(self, submissions):
        filters = SubmissionFilters(status="graded", min_score=70, max_score=100)
        assert [s.id for s in filter_submissions(submissions, filters)] == ["s1"]

    def test_range_is_inclusive(self, submissions):
        filters = SubmissionFilters(min_score=65, max_score=85)
        ids = [s.id for s in filter_submissions(submissions, filters)]
        assert "s1" in ids and "s2" in ids

    def test_range_ignores_ungraded(self, submissions):
        filters = SubmissionFilters(min_score=90)
        ids = [s.id for s in filter_submissions(submissions, filters)]
        assert ids == ["s3", "s4", "s5"]

    def test_search_case_insensitive_substring(self, submissions):
        filters = SubmissionFilters(search_term="ANA")
        assert [s.id for s in filter_submissions(submissions, filters)] == ["s1", "s5"]

    def test_search_excludes_missing_identifier(self, submissions):
        filters = SubmissionFilters(search_term="a")
        assert "s4" not in [s.id for s in filter_submissions(submissions, filters)]

    def test_filters_compose(self, submissions):
        filters = SubmissionFilters(status="graded", search_term="bruno")
        assert [s.id for s in filter_submissions(submissions, filters)] == ["s2"]

    def test_result_is_subset(self, submissions):
        filters = SubmissionFilters(status="failed")
        result = filter_submissions(submissions, filters)
        assert all(s in submissions for s in result)

    def test_works_on_dicts(self):
        rows = [{"status": "graded", "student_identifier": "x", "result": {"total_score": 65}}]
        assert filter_submissions(rows, SubmissionFilters(min_score=70)) == []


class TestAverageGradedScore:
    def test_average(self, submissions):
        assert average_graded_score(submissions) == 75

    def test_none_without_graded(self):
        assert average_graded_score([_sub("s1", "processing")]) is None


class TestApplySubmissionEvent:
    def test_insert_prepends(self, submissions):
        event = SubmissionEvent(type="INSERT", record={"id": "new", "exam_id": "exam-1", "status": "uploaded"})
        state = apply_submission_event(submissions, event, exam_id="exam-1")
        assert state[0].id == "new"
        assert len(state) == len(submissions) + 1

    def test_update_merges_status(self, submissions):
        event = SubmissionEvent(type="UPDATE", record={
            "id": "s3", "exam_id": "exam-1", "status": "graded",
            "processed_at": "2026-03-05T10:00:00+00:00",
        })
        state = apply_submission_event(submissions, event, exam_id="exam-1")
        merged = next(s for s in state if s.id == "s3")
        assert merged.status == "graded"
        assert merged.processed_at is not None
        assert merged.student_identifier == "Carla Dias"

    def test_update_keeps_embedded_result(self, submissions):
        event = SubmissionEvent(type="UPDATE", record={"id": "s1", "exam_id": "exam-1", "status": "graded"})
        state = apply_submission_event(submissions, event, exam_id="exam-1")
        assert next(s for s in state if s.id == "s1").score == 85

    def test_update_of_unknown_row_appends(self, submissions):
        event = SubmissionEvent(type="UPDATE", record={"id": "late", "exam_id": "exam-1", "status": "processing"})
        state = apply_submission_event(submissions, event)
        assert state[-1].id == "late"

    def test_replay_is_idempotent(self, submissions):
        event = SubmissionEvent(type="INSERT", record={"id": "new", "exam_id": "exam-1", "status": "uploaded"})
        once = apply_submission_event(submissions, event)
        twice = apply_submission_event(once, event)
        assert [s.id for s in twice] == [s.id for s in once]

    def test_other_exam_ignored(self, submissions):
        event = SubmissionEvent(type="INSERT", record={"id": "x", "exam_id": "exam-9", "status": "uploaded"})
        assert apply_submission_event(submissions, event, exam_id="exam-1") == submissions

    def test_input_not_mutated(self, submissions):
        before = [s.status for s in submissions]
        event = SubmissionEvent(type="UPDATE", record={"id": "s3", "exam_id": "exam-1", "status": "failed"})
        apply_submission_event(submissions, event)
        assert [s.status for s in submissions] == before
