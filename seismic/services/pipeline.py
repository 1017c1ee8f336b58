# File: seismic/services/pipeline.py
"""
Per-sample processing: classify and store, then for earthquakes estimate
aftershocks and notify. Estimation never starts before the event is stored,
dispatch never before estimation has finished or failed.
"""
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from seismic import socketio
from seismic.errors import AnalysisUnavailable, NotFound, StoreUnavailable
from seismic.services import aftershock, classifier
from seismic.services.classifier import Sample
from seismic.services.config_service import get_provider
from seismic.services.notifications import get_dispatcher
from seismic.store import EventStore

INLINE = 'inline'
BACKGROUND = 'background'
WORKER = 'worker'

COMPUTED = 'computed'
NOT_APPLICABLE = 'not_applicable'
UNAVAILABLE = 'unavailable'
QUEUED = 'queued'


@dataclass
class PipelineResult:
    event: object
    analysis: Optional[object] = None
    analysis_status: str = QUEUED
    outcome: Optional[object] = None

    def to_dict(self):
        return {
            'event': self.event.to_dict(),
            'aftershock_analysis': self.analysis.to_dict() if self.analysis is not None else None,
            'analysis_status': self.analysis_status,
            'notification': self.outcome.to_dict() if self.outcome is not None else None,
        }


def _emit(name, payload):
    try:
        socketio.emit(name, payload)
    except Exception as e:
        current_app.logger.warning('Socket.IO emit %s failed: %s', name, e)


def ingest(sample, mode=None):
    """Classify and store one sample, then hand it to processing according to PIPELINE_MODE."""
    if not isinstance(sample, Sample):
        sample = Sample.from_payload(sample)

    store = EventStore()
    snapshot = get_provider().snapshot()
    event = classifier.classify(sample, snapshot, store)
    _emit('new_event', event.to_dict())

    mode = mode or current_app.config.get('PIPELINE_MODE', BACKGROUND)
    if mode == INLINE:
        return process_event(event, snapshot=snapshot, store=store)
    if mode == BACKGROUND:
        app = current_app._get_current_object()
        socketio.start_background_task(_process_in_background, app, event.id)
    return PipelineResult(event=event)


def _process_in_background(app, event_id):
    with app.app_context():
        try:
            process_event(event_id)
        except Exception:
            # Left unprocessed, processEvents.py picks it up again
            app.logger.exception('Background processing of event %s failed', event_id)


def process_event(event, snapshot=None, store=None, now=None):
    """Run estimation and dispatch for a stored event (or event id)."""
    store = store or EventStore()
    if not hasattr(event, 'event_type'):
        event_id = event
        event = store.get_by_id(event_id)
        if event is None:
            raise NotFound(f'no event with id {event_id}')
    snapshot = snapshot or get_provider().snapshot()

    result = PipelineResult(event=event, analysis_status=NOT_APPLICABLE)
    probability = None

    if event.is_earthquake:
        try:
            result.analysis = aftershock.estimate(event, snapshot, store, now=now)
        except (AnalysisUnavailable, StoreUnavailable) as e:
            result.analysis_status = UNAVAILABLE
            current_app.logger.error('No aftershock analysis for event %s: %s', event.id, e.message)
        else:
            result.analysis_status = COMPUTED
            probability = result.analysis.probability_percentage
            store.mark_processed(event)
        notify = True
    else:
        store.mark_processed(event)
        notify = current_app.config.get('NOTIFY_VIBRATIONS', False)

    if notify:
        result.outcome = get_dispatcher(store).maybe_notify(event, probability, snapshot, now=now)
        _emit('new_alert', {
            'event_id': event.id,
            'event_type': event.event_type,
            'aftershock_probability': probability,
            'notification': result.outcome.to_dict(),
        })
    return result


def process_pending(limit=50):
    """Process stored events that were neither processed nor notified, oldest first."""
    store = EventStore()
    pending = store.query(processed=False, notification_sent=False, oldest_first=True, limit=limit)
    results = []
    for event in pending:
        try:
            results.append(process_event(event, store=store))
        except StoreUnavailable as e:
            current_app.logger.error('Processing event %s failed: %s', event.id, e.message)
    return results
