import os

# Path to the configuration file. Can be overriden for tests.
CONFIG_FILE_PATH = os.path.expanduser( '~/.oauthbridge' )
CONFIG_FILE_ENV_VAR = 'OAUTHBRIDGE_CONFIG_FILE'
CALLBACK_PORT_ENV_VAR = 'OAUTHBRIDGE_CALLBACK_PORT'
CALLBACK_TIMEOUT_ENV_VAR = 'OAUTHBRIDGE_CALLBACK_TIMEOUT'

# Callback listener settings.
# The redirect URI registered with providers must match these exactly.
CALLBACK_HOST = '127.0.0.1'
CALLBACK_PATH = '/callback'
DEFAULT_CALLBACK_PORT_RANGE = ( 8080, 8090 )

# None means wait for the redirect for as long as the process lives.
DEFAULT_CALLBACK_TIMEOUT = None

# Only the request line matters, a single read of this size is enough.
CALLBACK_READ_BUFFER_SIZE = 2048

# How often the accept loop wakes up to check for cancellation.
ACCEPT_POLL_INTERVAL = 0.5

# Status given to a newly created flow.
FLOW_STATUS_INITIATED = 'initiated'

# Events emitted to the frontend.
EVENT_FLOW_STARTED = 'oauth-flow-started'
EVENT_STATUS_REQUESTED = 'oauth-status-requested'
EVENT_ALL_STATUS_REQUESTED = 'oauth-all-status-requested'
EVENT_LOGOUT_REQUESTED = 'oauth-logout-requested'
EVENT_PROVIDERS_REQUESTED = 'oauth-providers-requested'
EVENT_REFRESH_REQUESTED = 'oauth-refresh-requested'
EVENT_FLOW_COMPLETED = 'oauth-flow-completed'
EVENT_ERROR = 'oauth-error'
EVENT_CONFIG_VALIDATION_REQUESTED = 'oauth-config-validation-requested'
EVENT_CONFIG_STATUS_REQUESTED = 'oauth-config-status-requested'
EVENT_SERVER_CALLBACK = 'oauth-server-callback'
EVENT_SERVER_ERROR = 'oauth-server-error'
