"""
Single-shot local HTTP listener for OAuth redirects.

The provider redirects the user's browser to http://127.0.0.1:<port>/callback
with the authorization parameters in the query string. The listener accepts
that one connection, answers with a page asking the browser to close itself,
and emits the raw query parameters as an "oauth-server-callback" event.

Binding happens synchronously so the caller knows the port is usable before it
sends the user to the provider, everything after that runs on a background
thread.
"""

import os
import socket
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from . import constants
from .sinks import NotificationSink
from .utils import CallbackBindError, DebugPrinter, OAuthBridgeException


CALLBACK_RESPONSE_BODY = (
    '<html><body><h1>Authenticated!</h1>'
    '<p>You can close this window now.</p>'
    '<script>window.close()</script></body></html>'
)


def parse_callback_params( request: str ) -> Dict[str, str]:
    '''Extract the query parameters from the request line of a raw HTTP request.

    Only the first line is looked at. The query runs from the first "?" to the
    next space, a request line without the trailing HTTP version yields no
    parameters. Pairs without "=" are dropped and values are not
    percent-decoded.

    Args:
        request (str): the raw request, as read from the socket.

    Returns:
        dict of parameter name to raw value.
    '''
    params = {}

    requestLine = request.split( '\n', 1 )[ 0 ]
    if requestLine.endswith( '\r' ):
        requestLine = requestLine[ : -1 ]

    queryStart = requestLine.find( '?' )
    if queryStart < 0:
        return params
    query = requestLine[ queryStart + 1 : ]

    queryEnd = query.find( ' ' )
    if queryEnd < 0:
        return params

    for pair in query[ : queryEnd ].split( '&' ):
        key, sep, value = pair.partition( '=' )
        if sep:
            params[ key ] = value
    return params


def build_callback_response() -> bytes:
    '''Build the full HTTP response sent back to the browser.'''
    body = CALLBACK_RESPONSE_BODY.encode( 'utf-8' )
    headers = (
        'HTTP/1.1 200 OK\r\n'
        'Content-Type: text/html\r\n'
        'Content-Length: %d\r\n'
        'Connection: close\r\n'
        '\r\n'
    ) % ( len( body ), )
    return headers.encode( 'ascii' ) + body


def callback_url( port: int ) -> str:
    return 'http://%s:%d%s' % ( constants.CALLBACK_HOST, port, constants.CALLBACK_PATH )


class CallbackListener( object ):
    '''Listener for exactly one OAuth redirect.

    A listener is not reusable: once it has served its connection, been
    cancelled or timed out, start a new one.
    '''

    BOUND = 'bound'
    WAITING = 'waiting'
    PARSING = 'parsing'
    RESPONDING = 'responding'
    NOTIFIED = 'notified'
    IDLE = 'idle'
    CANCELLED = 'cancelled'
    TIMED_OUT = 'timed_out'

    TERMINAL_STATES = ( NOTIFIED, IDLE, CANCELLED, TIMED_OUT )

    def __init__( self, port: int, sink: NotificationSink, timeout: Optional[float] = None, print_debug_fn: Optional[Callable[[str], None]] = None ):
        '''Create a listener, nothing is bound until start() is called.

        Args:
            port (int): local port to bind on 127.0.0.1, 0 lets the OS pick one.
            sink (NotificationSink): where the callback event is emitted.
            timeout (float): seconds to wait for the redirect, None waits forever.
            print_debug_fn (function(message)): a callback function that will receive detailed debug messages.
        '''
        self._requestedPort = port
        self._sink = sink
        self._timeout = timeout
        self._printDebug = DebugPrinter( print_debug_fn )

        self._sock = None
        self._thread = None
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._stateLock = threading.Lock()
        self._state = None

        self.port: Optional[int] = None
        self.url: Optional[str] = None
        self.params: Optional[Dict[str, str]] = None

    @property
    def state( self ) -> Optional[str]:
        with self._stateLock:
            return self._state

    def _setState( self, state: str ):
        with self._stateLock:
            self._state = state
        self._printDebug( 'callback listener on port %s is %s' % ( self.port, state ) )

    def _emit( self, event: str, payload: Any ):
        try:
            self._sink.emit( event, payload )
        except Exception as e:
            self._printDebug( 'failed to emit %s: %s' % ( event, e ) )

    def start( self ) -> str:
        '''Bind the port and start waiting for the redirect in the background.

        Returns:
            the callback URL to register as redirect URI.

        Raises:
            CallbackBindError: if the port cannot be bound.
        '''
        if self._sock is not None or self.state is not None:
            raise OAuthBridgeException( 'Callback listener already started.' )

        self._sock = self._bind()
        self.port = self._sock.getsockname()[ 1 ]
        self.url = callback_url( self.port )
        self._setState( self.BOUND )

        self._thread = threading.Thread( target = self._run, name = 'oauthbridge-callback-%d' % ( self.port, ) )
        self._thread.daemon = True
        self._setState( self.WAITING )
        self._thread.start()

        return self.url

    def _bind( self ) -> socket.socket:
        port = self._requestedPort
        sock = socket.socket( socket.AF_INET, socket.SOCK_STREAM )
        try:
            # On Windows SO_REUSEADDR would let a second listener steal the port.
            if os.name != 'nt':
                sock.setsockopt( socket.SOL_SOCKET, socket.SO_REUSEADDR, 1 )
            sock.bind( ( constants.CALLBACK_HOST, port ) )
            sock.listen( 1 )
        except ( OSError, OverflowError, TypeError ) as e:
            sock.close()
            raise CallbackBindError( 'Failed to bind to port %s: %s' % ( port, e ),
                                     port = port,
                                     code = getattr( e, 'errno', None ) )
        return sock

    def _run( self ):
        deadline = None
        if self._timeout is not None:
            deadline = time.monotonic() + self._timeout
        try:
            conn = self._accept( deadline )
            if conn is None:
                return
            with conn:
                self._handle( conn, deadline )
        finally:
            try:
                self._sock.close()
            except OSError:
                pass
            self._done.set()

    def _remaining( self, deadline: Optional[float] ) -> Optional[float]:
        if deadline is None:
            return None
        return deadline - time.monotonic()

    def _pollInterval( self, deadline: Optional[float] ) -> Optional[float]:
        '''Time to block before checking for cancellation again, None once the deadline passed.'''
        remaining = self._remaining( deadline )
        if remaining is None:
            return constants.ACCEPT_POLL_INTERVAL
        if remaining <= 0:
            return None
        return min( constants.ACCEPT_POLL_INTERVAL, remaining )

    def _accept( self, deadline: Optional[float] ) -> Optional[socket.socket]:
        while not self._cancelled.is_set():
            pollInterval = self._pollInterval( deadline )
            if pollInterval is None:
                self._setState( self.TIMED_OUT )
                self._emit( constants.EVENT_SERVER_ERROR, {
                    'port': self.port,
                    'error': 'timeout',
                    'error_description': 'No callback received within %s seconds' % ( self._timeout, ),
                } )
                return None

            self._sock.settimeout( pollInterval )

            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                self._printDebug( 'accept failed on port %s: %s' % ( self.port, e ) )
                self._setState( self.IDLE )
                return None

            self._printDebug( 'callback connection from %s:%s' % addr )
            return conn

        self._setState( self.CANCELLED )
        return None

    def _read( self, conn: socket.socket, deadline: Optional[float] ) -> Optional[bytes]:
        '''Single read of the request, None if cancelled or past the deadline.'''
        while not self._cancelled.is_set():
            pollInterval = self._pollInterval( deadline )
            if pollInterval is None:
                self._printDebug( 'no request data before the deadline' )
                self._setState( self.IDLE )
                return None
            conn.settimeout( pollInterval )
            try:
                return conn.recv( constants.CALLBACK_READ_BUFFER_SIZE )
            except socket.timeout:
                continue

        self._setState( self.CANCELLED )
        return None

    def _handle( self, conn: socket.socket, deadline: Optional[float] ):
        try:
            data = self._read( conn, deadline )
        except OSError as e:
            self._printDebug( 'callback read failed: %s' % ( e, ) )
            self._setState( self.IDLE )
            return
        if data is None:
            return
        if not data:
            self._printDebug( 'callback connection closed before sending data' )
            self._setState( self.IDLE )
            return

        self._setState( self.PARSING )
        params = parse_callback_params( data.decode( 'utf-8', errors = 'replace' ) )

        self._setState( self.RESPONDING )
        try:
            conn.sendall( build_callback_response() )
            conn.shutdown( socket.SHUT_WR )
        except OSError as e:
            # The browser going away does not change what we received.
            self._printDebug( 'callback response failed: %s' % ( e, ) )

        self.params = params
        self._emit( constants.EVENT_SERVER_CALLBACK, params )
        self._setState( self.NOTIFIED )

    def cancel( self, join_timeout: float = 2.0 ) -> None:
        '''Stop waiting for the redirect and release the port.

        Also abandons a connection that has not sent its request yet. Has no
        effect once the request was read. No event is emitted.
        '''
        self._cancelled.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join( timeout = join_timeout )

    def wait( self, timeout: Optional[float] = None ) -> bool:
        '''Block until the listener reaches a terminal state.

        Returns:
            True if it did within timeout seconds.
        '''
        return self._done.wait( timeout = timeout )

    def is_done( self ) -> bool:
        return self._done.is_set()


def start_callback_server( port: int, sink: NotificationSink, timeout: Optional[float] = None, print_debug_fn: Optional[Callable[[str], None]] = None ) -> str:
    '''Start a callback listener on the given port.

    Returns:
        the callback URL.

    Raises:
        CallbackBindError: if the port cannot be bound.
    '''
    return CallbackListener( port, sink, timeout = timeout, print_debug_fn = print_debug_fn ).start()


def start_callback_server_in_range( port_start: int, port_end: int, sink: NotificationSink, timeout: Optional[float] = None, print_debug_fn: Optional[Callable[[str], None]] = None ) -> Tuple[str, CallbackListener]:
    '''Start a callback listener on the first port of the range that binds.

    Args:
        port_start (int): first port to try.
        port_end (int): last port to try, inclusive.

    Returns:
        tuple of ( callback URL, listener ).

    Raises:
        CallbackBindError: if no port in the range could be bound.
    '''
    lastError = None
    for port in range( port_start, port_end + 1 ):
        listener = CallbackListener( port, sink, timeout = timeout, print_debug_fn = print_debug_fn )
        try:
            return listener.start(), listener
        except CallbackBindError as e:
            # Port is in use, try next one
            lastError = e
            continue

    raise CallbackBindError(
        'All OAuth callback ports (%d-%d) are currently in use: %s' % ( port_start, port_end, lastError ),
        port = port_end,
        code = lastError.code if lastError is not None else None )
