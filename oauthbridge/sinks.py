"""
Notification sinks: one-way delivery of events to the frontend.

The registry and the callback listener only ever call emit(). What happens to
the event (a queue, a callback, a line on a pipe) is up to the sink.
"""

import queue
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import json_utils


class NotificationSink( object ):
    '''Destination for events emitted by the bridge.'''

    def emit( self, event: str, payload: Any ) -> None:
        raise NotImplementedError()


class FunctionSink( NotificationSink ):
    '''Forwards each event to a function taking ( event, payload ).'''

    def __init__( self, fn: Callable[[str, Any], None] ):
        self._fn = fn

    def emit( self, event, payload ):
        self._fn( event, payload )


class QueueSink( NotificationSink ):
    '''Buffers events in a thread-safe queue for a consumer to pick up.'''

    def __init__( self ):
        self.queue = queue.Queue()

    def emit( self, event, payload ):
        self.queue.put( ( event, payload ) )

    def get( self, timeout: Optional[float] = None ) -> Tuple[str, Any]:
        '''Get the next event, blocking for up to timeout seconds.

        Raises:
            queue.Empty: if no event arrived in time.
        '''
        return self.queue.get( timeout = timeout )

    def wait_for( self, event: str, timeout: Optional[float] = None ) -> Any:
        '''Get the payload of the next event with the given name, dropping others.

        Raises:
            queue.Empty: if no such event arrived in time.
        '''
        while True:
            name, payload = self.queue.get( timeout = timeout )
            if name == event:
                return payload

    def drain( self ) -> List[Tuple[str, Any]]:
        '''Return all buffered events without blocking.'''
        events = []
        while True:
            try:
                events.append( self.queue.get_nowait() )
            except queue.Empty:
                return events


class StreamSink( NotificationSink ):
    '''Writes each event as a JSON line: {"event": <name>, "payload": <payload>}.

    The lock is exposed so that other writers of the same stream (the bridge
    replies) can serialize with it.
    '''

    def __init__( self, stream, lock: Optional[threading.Lock] = None ):
        self._stream = stream
        self.lock = lock or threading.Lock()

    def emit( self, event, payload ):
        message: Dict[str, Any] = { 'event': event, 'payload': payload }
        with self.lock:
            json_utils.dump_line( message, self._stream )
