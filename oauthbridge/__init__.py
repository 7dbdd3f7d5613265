"""oauthbridge: OAuth flow registry and loopback callback listener for desktop applications"""

__version__ = "1.0.0"
__author__ = "Maxime Lamothe-Brassard ( Refraction Point, Inc )"
__author_email__ = "maxime@refractionpoint.com"
__license__ = "Apache v2"
__copyright__ = "Copyright (c) 2020 Refraction Point, Inc"

from .utils import OAuthBridgeException
from .utils import CallbackBindError
from .utils import set_default_print_debug_fn
from .utils import load_config
from .sinks import NotificationSink, FunctionSink, QueueSink, StreamSink
from .flow_registry import FlowRegistry
from .callback_server import CallbackListener
from .callback_server import start_callback_server
from .callback_server import start_callback_server_in_range
from .callback_server import parse_callback_params
from .commands import OAuthCommands
from .bridge import Bridge
