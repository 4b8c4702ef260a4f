import logging

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Maps channel names to open subscription handles.

    A registry belongs to a single client and is not shared between threads.
    Handles only need a ``close()`` method.
    """

    def __init__(self):
        self._handles = {}

    def __contains__(self, name):
        return name in self._handles

    def __len__(self):
        return len(self._handles)

    def get(self, name):
        return self._handles.get(name)

    def names(self):
        return list(self._handles)

    def register(self, name, handle):
        existing = self._handles.get(name)
        if existing is handle:
            return
        if existing is not None:
            logger.warning("Replacing open subscription %s; closing the previous handle", name)
            existing.close()
        self._handles[name] = handle

    def release(self, name):
        handle = self._handles.pop(name, None)
        if handle is not None:
            handle.close()
            logger.debug("Released subscription %s", name)

    def release_all(self):
        while self._handles:
            name, handle = self._handles.popitem()
            handle.close()
            logger.debug("Released subscription %s", name)
