"""
JSON lines bridge between the application shell and the OAuth commands.

The shell writes one request per line:

    {"id": 1, "command": "oauth_start_server", "args": {"port": 8085}}

and reads back replies and events from the same output stream:

    {"id": 1, "result": "http://127.0.0.1:8085/callback"}
    {"id": 2, "error": "Failed to bind to port 8085: ..."}
    {"event": "oauth-server-callback", "payload": {"code": "...", "state": "..."}}
"""

import threading
from typing import Any, Callable, Dict, Optional

from . import json_utils
from .commands import OAuthCommands
from .sinks import StreamSink
from .utils import DebugPrinter, OAuthBridgeException


class Bridge( object ):
    '''Serves OAuthCommands over a pair of line based streams.'''

    def __init__( self, input_stream, output_stream, callback_timeout: Optional[float] = None, print_debug_fn: Optional[Callable[[str], None]] = None ):
        self._input = input_stream
        self._output = output_stream
        self._printDebug = DebugPrinter( print_debug_fn )
        self._lock = threading.Lock()
        self.sink = StreamSink( output_stream, lock = self._lock )
        self.commands = OAuthCommands( self.sink, callback_timeout = callback_timeout, print_debug_fn = print_debug_fn )

    def _reply( self, message: Dict[str, Any] ):
        with self._lock:
            json_utils.dump_line( message, self._output )

    def handle_line( self, line: str ) -> Optional[Dict[str, Any]]:
        '''Process one request line.

        Returns:
            the reply, or None for a blank line.
        '''
        line = line.strip()
        if not line:
            return None

        try:
            request = json_utils.loads( line )
        except ValueError as e:
            return { 'id': None, 'error': 'Invalid request: %s' % ( e, ) }
        if not isinstance( request, dict ):
            return { 'id': None, 'error': 'Invalid request: expected an object.' }

        requestId = request.get( 'id', None )
        command = request.get( 'command', None )
        if not isinstance( command, str ):
            return { 'id': requestId, 'error': 'Invalid request: missing "command".' }

        try:
            result = self.commands.dispatch( command, request.get( 'args', None ) )
        except OAuthBridgeException as e:
            self._printDebug( '%s failed: %s' % ( command, e ) )
            return { 'id': requestId, 'error': str( e ) }
        except ( TypeError, AttributeError, ValueError ) as e:
            # Badly typed arguments must not end the bridge.
            self._printDebug( '%s failed on its arguments: %r' % ( command, e ) )
            return { 'id': requestId, 'error': 'Invalid arguments for %s: %s' % ( command, e ) }
        return { 'id': requestId, 'result': result }

    def serve( self ) -> None:
        '''Process requests until the input stream ends.'''
        self._printDebug( 'bridge serving' )
        try:
            for line in self._input:
                reply = self.handle_line( line )
                if reply is not None:
                    self._reply( reply )
        finally:
            self.commands.shutdown()
            self._printDebug( 'bridge input closed' )
