"""
Registry of in-flight OAuth authorization flows.

The registry tracks flows by id and keeps the last reported error. The actual
OAuth work (opening the browser, exchanging the code) is done by the frontend,
which is told about every change through the notification sink and reports
back through complete_flow() and report_error().
"""

import threading
import uuid
from typing import Any, Callable, List, Optional

from . import constants
from .models import Flow, OAuthResult
from .sinks import NotificationSink
from .utils import DebugPrinter


class FlowRegistry( object ):
    '''Thread-safe table of active flows plus a single last-error slot.

    Flows never expire, they stay in the table until completed or abandoned
    through report_error().
    '''

    def __init__( self, sink: NotificationSink, print_debug_fn: Optional[Callable[[str], None]] = None ):
        '''Create a registry.

        Args:
            sink (NotificationSink): where flow events are emitted.
            print_debug_fn (function(message)): a callback function that will receive detailed debug messages.
        '''
        self._sink = sink
        self._printDebug = DebugPrinter( print_debug_fn )
        self._lock = threading.Lock()
        self._flows = {}
        self._lastError: Optional[str] = None

    def _emit( self, event: str, payload: Any ):
        # Never called with the lock held, the sink may be slow.
        try:
            self._sink.emit( event, payload )
        except Exception as e:
            self._printDebug( 'failed to emit %s: %s' % ( event, e ) )

    def begin_flow( self, provider: str, force_reauth: bool = False ) -> str:
        '''Start tracking a new flow and ask the frontend to open the provider.

        Args:
            provider (str): provider identifier, not validated.
            force_reauth (bool): passed along to the frontend.

        Returns:
            the new flow id.
        '''
        flowId = str( uuid.uuid4() )
        flow = Flow( flowId, provider, constants.FLOW_STATUS_INITIATED )
        with self._lock:
            self._flows[ flowId ] = flow
        self._printDebug( 'flow %s started for provider %s' % ( flowId, provider ) )

        self._emit( constants.EVENT_FLOW_STARTED, {
            'flow_id': flowId,
            'provider': provider,
            'force_reauth': bool( force_reauth ),
        } )
        return flowId

    def get_flow_status( self, flow_id: str ) -> Optional[str]:
        '''Get the status of a flow, or None if the id is unknown.'''
        with self._lock:
            flow = self._flows.get( flow_id, None )
            return flow.status if flow is not None else None

    def get_flow( self, flow_id: str ) -> Optional[Flow]:
        '''Get a copy of a flow, or None if the id is unknown.'''
        with self._lock:
            flow = self._flows.get( flow_id, None )
            return flow.copy() if flow is not None else None

    def active_flows( self ) -> List[Flow]:
        '''Get copies of all active flows, oldest first.'''
        with self._lock:
            flows = [ f.copy() for f in self._flows.values() ]
        return sorted( flows, key = lambda f: f.started_at )

    def update_flow_status( self, flow_id: str, status: str ) -> None:
        '''Set the status of a flow. Unknown ids are ignored.'''
        with self._lock:
            flow = self._flows.get( flow_id, None )
            if flow is not None:
                flow.status = status
        if flow is None:
            self._printDebug( 'status update for unknown flow %s ignored' % ( flow_id, ) )

    def complete_flow( self, flow_id: str, result: OAuthResult ) -> None:
        '''Remove a flow and notify the frontend of its result.

        The flow does not have to exist, the notification is emitted regardless.
        '''
        with self._lock:
            self._flows.pop( flow_id, None )
        self._printDebug( 'flow %s completed' % ( flow_id, ) )

        self._emit( constants.EVENT_FLOW_COMPLETED, {
            'flow_id': flow_id,
            'result': result,
        } )

    def report_error( self, flow_id: Optional[str], error: str, error_description: Optional[str] = None ) -> None:
        '''Record an error, abandoning the given flow if any.

        Args:
            flow_id (str): flow the error belongs to, or None.
            error (str): short error code, becomes the last error.
            error_description (str): optional human readable details.
        '''
        with self._lock:
            self._lastError = error
            if flow_id is not None:
                self._flows.pop( flow_id, None )
        self._printDebug( 'error reported for flow %s: %s' % ( flow_id, error ) )

        self._emit( constants.EVENT_ERROR, {
            'flow_id': flow_id,
            'error': error,
            'error_description': error_description,
        } )

    def get_last_error( self ) -> Optional[str]:
        with self._lock:
            return self._lastError

    def clear_errors( self ) -> None:
        with self._lock:
            self._lastError = None

    def __len__( self ):
        with self._lock:
            return len( self._flows )
