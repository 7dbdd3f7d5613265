import os
import yaml
from datetime import datetime, timezone
from typing import Callable, Optional

from . import constants


class OAuthBridgeException ( Exception ):
    '''Exception type used for various errors in oauthbridge.'''

    def __init__(self, message, code=None):
        """
        Initialize the exception with a message and an optional status code.

        Args:
            message (str): The error message.
            code (int, optional): An optional code, like the errno of a failed socket call. Defaults to None.
        """
        super().__init__(message)
        self.code = code


class CallbackBindError ( OAuthBridgeException ):
    '''Raised when the callback listener cannot bind its local port.'''

    def __init__(self, message, port=None, code=None):
        super().__init__(message, code=code)
        self.port = port


# Default function to call with debug messages.
DEFAULT_PRINT_DEBUG_FN: Optional[Callable[[str], None]] = None

def set_default_print_debug_fn( fn: Optional[Callable[[str], None]] = None ):
    """
    Set a default function to call with debug messages.

    Args:
        fn (function): the function to call with debug messages.
    """
    global DEFAULT_PRINT_DEBUG_FN
    DEFAULT_PRINT_DEBUG_FN = fn


class DebugPrinter( object ):
    '''Timestamps debug messages and forwards them to a debug function, if any.'''

    def __init__( self, print_debug_fn: Optional[Callable[[str], None]] = None ):
        self._fn = print_debug_fn

    def __call__( self, msg: str ):
        # The default is looked up on each call so it can be set after construction.
        fn = self._fn or DEFAULT_PRINT_DEBUG_FN
        if fn is None:
            return
        time_string = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%SZ")
        fn( f"{time_string}: {msg}" )


def _parseTimeout( value ):
    if value is None:
        return None
    if isinstance( value, str ):
        value = value.strip()
        if value == '' or value.lower() in ( 'none', 'null', '0' ):
            return None
    try:
        value = float( value )
    except ( TypeError, ValueError ):
        raise OAuthBridgeException( 'Invalid callback timeout: %r' % ( value, ) )
    if value <= 0:
        return None
    return value

def _parsePort( value ):
    try:
        port = int( value )
    except ( TypeError, ValueError ):
        raise OAuthBridgeException( 'Invalid callback port: %r' % ( value, ) )
    if port < 0 or port > 65535:
        raise OAuthBridgeException( 'Invalid callback port: %r' % ( value, ) )
    return port

def load_config( path: Optional[str] = None ) -> dict:
    '''Load the bridge configuration.

    Values are taken, in increasing order of precedence, from the defaults in
    constants, the YAML config file and the environment.

    Args:
        path (str): path to the YAML config file, defaults to $OAUTHBRIDGE_CONFIG_FILE or ~/.oauthbridge.

    Returns:
        dict with keys "callback_port" (int or None), "callback_port_range" (tuple) and "callback_timeout" (float or None).
    '''
    config = {
        'callback_port': None,
        'callback_port_range': tuple( constants.DEFAULT_CALLBACK_PORT_RANGE ),
        'callback_timeout': constants.DEFAULT_CALLBACK_TIMEOUT,
    }

    if path is None:
        path = os.environ.get( constants.CONFIG_FILE_ENV_VAR, None ) or constants.CONFIG_FILE_PATH

    if os.path.isfile( path ):
        with open( path, 'rb' ) as f:
            try:
                fileConfig = yaml.safe_load( f.read() )
            except yaml.YAMLError as e:
                raise OAuthBridgeException( 'Invalid config file %s: %s' % ( path, e ) )
        if fileConfig is None:
            fileConfig = {}
        if not isinstance( fileConfig, dict ):
            raise OAuthBridgeException( 'Invalid config file %s: expected a mapping.' % ( path, ) )

        if fileConfig.get( 'callback_port', None ) is not None:
            config[ 'callback_port' ] = _parsePort( fileConfig[ 'callback_port' ] )
        portRange = fileConfig.get( 'callback_port_range', None )
        if portRange is not None:
            if not isinstance( portRange, ( list, tuple ) ) or 2 != len( portRange ):
                raise OAuthBridgeException( 'Invalid callback_port_range, expected [start, end].' )
            start, end = _parsePort( portRange[ 0 ] ), _parsePort( portRange[ 1 ] )
            if start > end:
                raise OAuthBridgeException( 'Invalid callback_port_range, start is after end.' )
            config[ 'callback_port_range' ] = ( start, end )
        if 'callback_timeout' in fileConfig:
            config[ 'callback_timeout' ] = _parseTimeout( fileConfig[ 'callback_timeout' ] )

    envPort = os.environ.get( constants.CALLBACK_PORT_ENV_VAR, None )
    if envPort:
        config[ 'callback_port' ] = _parsePort( envPort )
    envTimeout = os.environ.get( constants.CALLBACK_TIMEOUT_ENV_VAR, None )
    if envTimeout is not None:
        config[ 'callback_timeout' ] = _parseTimeout( envTimeout )

    return config
