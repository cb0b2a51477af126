"""Minimal observer mixin shared by layers, overlays and the viewport."""
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class Evented:
    """Named-event registry with `on`/`off`/`fire`.

    Callbacks receive a single payload dict with at least ``type`` and
    ``target`` keys. Listeners are called in registration order; a listener
    registered twice is called twice.
    """

    def _listeners(self, name: str) -> List[Callable[[Dict[str, Any]], Any]]:
        registry = self.__dict__.setdefault('_event_listeners', {})
        return registry.setdefault(name, [])

    def on(self, name: str, callback):
        self._listeners(name).append(callback)
        return self

    def off(self, name: str, callback):
        listeners = self._listeners(name)
        try:
            listeners.remove(callback)
        except ValueError:
            logger.debug('%s: off(%r) for a callback that was not registered', type(self).__name__, name)
        return self

    def listens(self, name: str) -> bool:
        return bool(self._listeners(name))

    def fire(self, name: str, **data: Any):
        payload = {'type': name, 'target': self}
        payload.update(data)
        # copy: a listener may unsubscribe itself
        for callback in list(self._listeners(name)):
            callback(payload)
        return self
