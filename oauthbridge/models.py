"""
Value objects exchanged with the frontend.

Everything here is JSON-shaped: to_dict() produces the payload sent over the
notification channel and from_dict() accepts what the frontend sends back.
Keys are snake_case on the wire.
"""

import copy
import time
from typing import Any, Dict, Optional

from .utils import OAuthBridgeException


def _require( data: Dict[str, Any], key: str, what: str ):
    if not isinstance( data, dict ):
        raise OAuthBridgeException( '%s must be an object.' % ( what, ) )
    if data.get( key, None ) is None:
        raise OAuthBridgeException( '%s is missing "%s".' % ( what, key ) )
    return data[ key ]


class Flow( object ):
    '''One in-progress authorization attempt tracked by the FlowRegistry.'''

    def __init__( self, flow_id: str, provider: str, status: str, started_at: Optional[float] = None ):
        self.flow_id = flow_id
        self.provider = provider
        self.status = status
        self.started_at = started_at if started_at is not None else time.time()

    def copy( self ) -> 'Flow':
        return copy.copy( self )

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'flow_id': self.flow_id,
            'provider': self.provider,
            'started_at': self.started_at,
            'status': self.status,
        }

    def __repr__( self ):
        return 'Flow(%s, provider=%s, status=%s)' % ( self.flow_id, self.provider, self.status )


class OAuthTokens( object ):
    '''Tokens as reported by the frontend after an exchange. Never interpreted here.'''

    def __init__( self, access_token: str, expires_at: str, scope: str, token_type: str, refresh_token: Optional[str] = None ):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.expires_at = expires_at
        self.scope = scope
        self.token_type = token_type

    @classmethod
    def from_dict( cls, data: Dict[str, Any] ) -> 'OAuthTokens':
        return cls(
            access_token = _require( data, 'access_token', 'tokens' ),
            refresh_token = data.get( 'refresh_token', None ),
            expires_at = data.get( 'expires_at', '' ),
            scope = data.get( 'scope', '' ),
            token_type = data.get( 'token_type', '' ),
        )

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'access_token': self.access_token,
            'refresh_token': self.refresh_token,
            'expires_at': self.expires_at,
            'scope': self.scope,
            'token_type': self.token_type,
        }


class OAuthResult( object ):
    '''Outcome of a flow, reported by the frontend through complete_flow.'''

    def __init__( self, success: bool, provider: str, tokens: Optional[OAuthTokens] = None, error: Optional[str] = None, error_description: Optional[str] = None ):
        self.success = success
        self.provider = provider
        self.tokens = tokens
        self.error = error
        self.error_description = error_description

    @classmethod
    def from_dict( cls, data: Dict[str, Any] ) -> 'OAuthResult':
        success = _require( data, 'success', 'result' )
        tokens = data.get( 'tokens', None )
        return cls(
            success = bool( success ),
            provider = _require( data, 'provider', 'result' ),
            tokens = OAuthTokens.from_dict( tokens ) if tokens is not None else None,
            error = data.get( 'error', None ),
            error_description = data.get( 'error_description', None ),
        )

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'success': self.success,
            'provider': self.provider,
            'tokens': self.tokens.to_dict() if self.tokens is not None else None,
            'error': self.error,
            'error_description': self.error_description,
        }


class OAuthStatus( object ):

    def __init__( self, provider: str, is_authenticated: bool = False, expires_at: Optional[str] = None, last_refresh: Optional[str] = None ):
        self.provider = provider
        self.is_authenticated = is_authenticated
        self.expires_at = expires_at
        self.last_refresh = last_refresh

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'provider': self.provider,
            'is_authenticated': self.is_authenticated,
            'expires_at': self.expires_at,
            'last_refresh': self.last_refresh,
        }


class OAuthProvider( object ):

    def __init__( self, name: str, display_name: str, enabled: bool = True ):
        self.name = name
        self.display_name = display_name
        self.enabled = enabled

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'name': self.name,
            'display_name': self.display_name,
            'enabled': self.enabled,
        }


class OAuthAuthRequest( object ):

    def __init__( self, provider: str, force_reauth: Optional[bool] = None ):
        self.provider = provider
        self.force_reauth = force_reauth

    @classmethod
    def from_dict( cls, data: Dict[str, Any] ) -> 'OAuthAuthRequest':
        return cls( _require( data, 'provider', 'request' ), data.get( 'force_reauth', None ) )


class OAuthLogoutRequest( object ):

    def __init__( self, provider: str, revoke_tokens: Optional[bool] = None ):
        self.provider = provider
        self.revoke_tokens = revoke_tokens

    @classmethod
    def from_dict( cls, data: Dict[str, Any] ) -> 'OAuthLogoutRequest':
        return cls( _require( data, 'provider', 'request' ), data.get( 'revoke_tokens', None ) )


class CallbackResult( object ):
    '''Interpretation of the parameters captured by the callback listener.

    The listener itself forwards parameters verbatim, this is only a
    convenience for consumers like the CLI.
    '''

    def __init__( self, success: bool, code: Optional[str] = None, state: Optional[str] = None, error: Optional[str] = None, error_description: Optional[str] = None ):
        self.success = success
        self.code = code
        self.state = state
        self.error = error
        self.error_description = error_description

    @classmethod
    def from_params( cls, params: Dict[str, str] ) -> 'CallbackResult':
        if params.get( 'code', None ):
            return cls( True, code = params[ 'code' ], state = params.get( 'state', None ) )
        if params.get( 'error', None ):
            return cls( False, state = params.get( 'state', None ), error = params[ 'error' ], error_description = params.get( 'error_description', None ) )
        return cls( False, error = 'callback_failed', error_description = 'Received callback without code or error' )

    def to_dict( self ) -> Dict[str, Any]:
        return {
            'success': self.success,
            'code': self.code,
            'state': self.state,
            'error': self.error,
            'error_description': self.error_description,
        }
