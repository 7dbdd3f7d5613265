"""
Command surface exposed to the application shell.

Each oauth_* method corresponds to one command the shell can invoke. Commands
that need provider knowledge only forward the request to the frontend through
the notification sink and return a placeholder, the frontend answers through
later events.
"""

import inspect
import threading
from typing import Any, Callable, Dict, List, Optional

from . import constants
from .callback_server import CallbackListener
from .flow_registry import FlowRegistry
from .models import OAuthAuthRequest, OAuthLogoutRequest, OAuthProvider, OAuthResult, OAuthStatus
from .sinks import NotificationSink
from .utils import DebugPrinter, OAuthBridgeException


class OAuthCommands( object ):
    '''The set of OAuth commands backed by a FlowRegistry and a notification sink.'''

    def __init__( self, sink: NotificationSink, registry: Optional[FlowRegistry] = None, callback_timeout: Optional[float] = None, print_debug_fn: Optional[Callable[[str], None]] = None ):
        '''Create the command surface.

        Args:
            sink (NotificationSink): where events are emitted.
            registry (FlowRegistry): registry to use, a new one is created if unset.
            callback_timeout (float): timeout given to callback listeners, None waits forever.
            print_debug_fn (function(message)): a callback function that will receive detailed debug messages.
        '''
        self._sink = sink
        self._debugFn = print_debug_fn
        self._printDebug = DebugPrinter( print_debug_fn )
        self.registry = registry if registry is not None else FlowRegistry( sink, print_debug_fn = print_debug_fn )
        self._callbackTimeout = callback_timeout
        self._listenersLock = threading.Lock()
        self._listeners: List[CallbackListener] = []

    def _requireStr( self, value: Any, name: str, optional: bool = False ):
        if value is None and optional:
            return value
        if not isinstance( value, str ):
            raise OAuthBridgeException( '%s must be a string.' % ( name, ) )
        return value

    def _emit( self, event: str, payload: Any ):
        try:
            self._sink.emit( event, payload )
        except Exception as e:
            self._printDebug( 'failed to emit %s: %s' % ( event, e ) )

    def oauth_authenticate( self, request ) -> str:
        if isinstance( request, dict ):
            request = OAuthAuthRequest.from_dict( request )
        elif not isinstance( request, OAuthAuthRequest ):
            raise OAuthBridgeException( 'request must be an object.' )
        self._requireStr( request.provider, 'provider' )
        return self.registry.begin_flow( request.provider, force_reauth = bool( request.force_reauth ) )

    def oauth_get_status( self, provider: str ) -> OAuthStatus:
        self._requireStr( provider, 'provider' )
        self._emit( constants.EVENT_STATUS_REQUESTED, { 'provider': provider } )
        # The frontend owns the tokens, it reports the real status through events.
        return OAuthStatus( provider, is_authenticated = False )

    def oauth_get_all_status( self ) -> List[OAuthStatus]:
        self._emit( constants.EVENT_ALL_STATUS_REQUESTED, {} )
        return []

    def oauth_logout( self, request ) -> bool:
        if isinstance( request, dict ):
            request = OAuthLogoutRequest.from_dict( request )
        elif not isinstance( request, OAuthLogoutRequest ):
            raise OAuthBridgeException( 'request must be an object.' )
        self._requireStr( request.provider, 'provider' )
        self._emit( constants.EVENT_LOGOUT_REQUESTED, {
            'provider': request.provider,
            'revoke_tokens': bool( request.revoke_tokens ),
        } )
        return True

    def oauth_get_providers( self ) -> List[OAuthProvider]:
        self._emit( constants.EVENT_PROVIDERS_REQUESTED, {} )
        return []

    def oauth_refresh_tokens( self, provider: str ) -> bool:
        self._requireStr( provider, 'provider' )
        self._emit( constants.EVENT_REFRESH_REQUESTED, { 'provider': provider } )
        return True

    def oauth_get_flow_status( self, flow_id: str ) -> Optional[str]:
        self._requireStr( flow_id, 'flow_id' )
        return self.registry.get_flow_status( flow_id )

    def oauth_update_flow_status( self, flow_id: str, status: str ) -> None:
        self._requireStr( flow_id, 'flow_id' )
        self._requireStr( status, 'status' )
        self.registry.update_flow_status( flow_id, status )

    def oauth_complete_flow( self, flow_id: str, result ) -> None:
        self._requireStr( flow_id, 'flow_id' )
        if isinstance( result, dict ):
            result = OAuthResult.from_dict( result )
        elif not isinstance( result, OAuthResult ):
            raise OAuthBridgeException( 'result must be an object.' )
        self.registry.complete_flow( flow_id, result )

    def oauth_handle_error( self, error: str, flow_id: Optional[str] = None, error_description: Optional[str] = None ) -> None:
        self._requireStr( error, 'error' )
        self._requireStr( flow_id, 'flow_id', optional = True )
        self._requireStr( error_description, 'error_description', optional = True )
        self.registry.report_error( flow_id, error, error_description )

    def oauth_get_last_error( self ) -> Optional[str]:
        return self.registry.get_last_error()

    def oauth_clear_errors( self ) -> None:
        self.registry.clear_errors()

    def oauth_validate_config( self ) -> bool:
        self._emit( constants.EVENT_CONFIG_VALIDATION_REQUESTED, {} )
        return True

    def oauth_get_config_status( self ) -> Dict[str, bool]:
        self._emit( constants.EVENT_CONFIG_STATUS_REQUESTED, {} )
        return {}

    def oauth_start_server( self, port: int ) -> str:
        '''Start a callback listener on 127.0.0.1:<port>.

        Returns:
            the callback URL.

        Raises:
            CallbackBindError: if the port cannot be bound.
        '''
        listener = CallbackListener( port, self._sink, timeout = self._callbackTimeout, print_debug_fn = self._debugFn )
        url = listener.start()
        with self._listenersLock:
            self._listeners = [ l for l in self._listeners if not l.is_done() ]
            self._listeners.append( listener )
        return url

    COMMANDS = (
        'oauth_authenticate',
        'oauth_get_status',
        'oauth_get_all_status',
        'oauth_logout',
        'oauth_get_providers',
        'oauth_refresh_tokens',
        'oauth_get_flow_status',
        'oauth_update_flow_status',
        'oauth_complete_flow',
        'oauth_handle_error',
        'oauth_get_last_error',
        'oauth_clear_errors',
        'oauth_validate_config',
        'oauth_get_config_status',
        'oauth_start_server',
    )

    def dispatch( self, command: str, args: Optional[Dict[str, Any]] = None ) -> Any:
        '''Invoke a command by name with keyword arguments.

        Raises:
            OAuthBridgeException: if the command is unknown or the arguments do not match it.
        '''
        if command not in self.COMMANDS:
            raise OAuthBridgeException( 'Unknown command: %s' % ( command, ) )
        if args is None:
            args = {}
        if not isinstance( args, dict ):
            raise OAuthBridgeException( 'Arguments for %s must be an object.' % ( command, ) )

        handler = getattr( self, command )
        try:
            inspect.signature( handler ).bind( **args )
        except TypeError as e:
            raise OAuthBridgeException( 'Invalid arguments for %s: %s' % ( command, e ) )
        return handler( **args )

    def shutdown( self ) -> None:
        '''Cancel the callback listeners still waiting for a redirect.'''
        with self._listenersLock:
            listeners = self._listeners
            self._listeners = []
        for listener in listeners:
            if not listener.is_done():
                listener.cancel()
