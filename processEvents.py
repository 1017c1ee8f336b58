# File: processEvents.py
"""
Background worker for PIPELINE_MODE=worker (and a safety net for the other
modes): estimates aftershocks and dispatches alerts for stored events that
were not processed yet. Retrying events left behind is this loop's job.
"""
import time

from seismic import create_app
from seismic.errors import SeismicError
from seismic.services.pipeline import process_pending


def run():
    """Event processing background service"""
    app = create_app()
    poll_seconds = app.config['WORKER_POLL_SECONDS']

    with app.app_context():
        print(f"✅ Event worker started - polling every {poll_seconds} seconds")

        while True:
            try:
                results = process_pending(limit=50)
                for result in results:
                    outcome = result.outcome
                    summary = outcome.to_dict() if outcome else 'no dispatch'
                    print(f"   📨 Event {result.event.id} ({result.event.event_type}) "
                          f"analysis={result.analysis_status} notification={summary}")
            except SeismicError as e:
                app.logger.error('Event worker pass failed: %s', e.message)

            # Wait before scanning the store again
            time.sleep(poll_seconds)


if __name__ == "__main__":
    run()
