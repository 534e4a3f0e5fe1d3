"""
Live submission status for one exam.

A SubmissionFeed keeps the exam's submission list and folds Supabase
realtime changes into it as the grading function moves rows from
uploaded to processing to graded or failed.
"""
import logging
import threading
from typing import Callable, List, Optional

from ..assessment.submissions import Submission, SubmissionEvent, apply_submission_event

logger = logging.getLogger(__name__)

WATCHED_EVENTS = ('INSERT', 'UPDATE')


def payload_to_event(payload) -> Optional[SubmissionEvent]:
    """
    Normalize a realtime payload into a SubmissionEvent.

    Accepts the nested ``{"data": {"type", "record"}}`` shape as well as the
    flat ``{"eventType", "new"}`` one. Returns None for anything else.
    """
    if not isinstance(payload, dict):
        return None
    body = payload.get('data') if isinstance(payload.get('data'), dict) else payload

    kind = body.get('type') or body.get('eventType')
    record = body.get('record') or body.get('new')
    if not kind or not isinstance(record, dict):
        return None
    return SubmissionEvent(type=str(kind).upper(), record=record)


class SubmissionFeed:

    def __init__(self, exam_id, initial: Optional[List[Submission]] = None,
                 on_change: Optional[Callable] = None):
        self.exam_id = exam_id
        self.on_change = on_change
        self._state = list(initial or [])
        self._lock = threading.Lock()
        self._channel = None

    @property
    def submissions(self) -> List[Submission]:
        with self._lock:
            return list(self._state)

    @property
    def channel_name(self):
        return f"submissions-{self.exam_id}"

    def handle(self, payload):
        event = payload_to_event(payload)
        if event is None:
            logger.debug("Ignoring realtime payload without a record: %s", payload)
            return

        with self._lock:
            self._state = apply_submission_event(self._state, event, exam_id=self.exam_id)
            snapshot = list(self._state)

        status = event.record.get('status')
        if status in ('graded', 'failed'):
            logger.info("Submission %s is now %s", event.record.get('id'), status)
        if self.on_change:
            self.on_change(event, snapshot)

    def subscribe(self, channel_factory):
        """
        Listen for inserts and updates on this exam's submissions.

        ``channel_factory`` is called with the channel name and must return a
        realtime channel (``client.channel`` on a Supabase client).
        """
        channel = channel_factory(self.channel_name)
        for event in WATCHED_EVENTS:
            channel.on_postgres_changes(
                event,
                schema='public',
                table='submissions',
                filter=f"exam_id=eq.{self.exam_id}",
                callback=self.handle,
            )
        channel.subscribe()
        self._channel = channel
        logger.info("Subscribed to %s", self.channel_name)
        return channel

    def close(self):
        if self._channel is None:
            return
        self._channel.unsubscribe()
        self._channel = None
        logger.info("Unsubscribed from %s", self.channel_name)
