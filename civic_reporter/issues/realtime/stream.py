"""Server-Sent Events bridge for mounted screen controllers."""

import json
import queue

from django.core.serializers.json import DjangoJSONEncoder


def format_event(name, payload) -> str:
    return f"event: {name}\ndata: {json.dumps(payload, cls=DjangoJSONEncoder)}\n\n"


def stream_screen(screen, serialize, keepalive=15):
    """Mount ``screen`` and yield one SSE frame per folded event.

    The first frame carries the snapshot. ``serialize(state, event)`` runs as
    soon as the event is folded, not when the frame is written, so it may read
    per-event attributes of ``screen``. Closing the generator unmounts the
    screen, which releases its subscription.
    """
    frames = queue.Queue()
    screen.add_listener(lambda state, event: frames.put(format_event(event.event_type, serialize(state, event))))
    state = screen.mount()
    try:
        yield format_event("snapshot", serialize(state, None))
        while True:
            try:
                yield frames.get(timeout=keepalive)
            except queue.Empty:
                yield ": keep-alive\n\n"
    finally:
        screen.unmount()
