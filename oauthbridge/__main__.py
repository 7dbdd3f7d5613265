import sys
import traceback


def cli(args):
    """
    Command line interface for oauthbridge.

    Args:
        args (list): list of CLI arguments to parse.
    """
    import argparse

    from . import __version__
    from .utils import load_config, CallbackBindError

    parser = argparse.ArgumentParser( prog = 'oauthbridge' )
    parser.add_argument( 'action',
                         type = str,
                         help = 'action, currently supported "version" (print the version), "listen" (wait for one OAuth redirect and print its parameters), "serve" (run the JSON lines bridge on stdin/stdout)' )

    # Everything after the action name is passed to the action argument parser.
    rootArgs = args[ 1: 2 ]
    actionArgs = args[ 2: ]
    args = parser.parse_args( rootArgs )

    if args.action.lower() == 'version':
        print( "oauthbridge version %s" % ( __version__, ) )
    elif args.action.lower() == 'listen':
        from . import constants
        from .callback_server import CallbackListener, start_callback_server_in_range
        from .models import CallbackResult
        from .sinks import QueueSink
        from .term_utils import formatCallbackParams, formatCallbackResult, prettyFormatDict

        parser = argparse.ArgumentParser( prog = 'oauthbridge listen' )
        parser.add_argument( '--port',
                             type = int,
                             default = None,
                             help = 'port to listen on, defaults to the configured port or the first free port of the configured range' )
        parser.add_argument( '--timeout',
                             type = float,
                             default = None,
                             help = 'seconds to wait for the redirect, defaults to the configured timeout' )
        parser.add_argument( '--json',
                             action = 'store_true',
                             default = False,
                             help = 'print the parameters as JSON' )
        listenArgs = parser.parse_args( actionArgs )

        config = load_config()
        timeout = listenArgs.timeout if listenArgs.timeout is not None else config[ 'callback_timeout' ]
        port = listenArgs.port if listenArgs.port is not None else config[ 'callback_port' ]
        sink = QueueSink()

        try:
            if port is not None:
                listener = CallbackListener( port, sink, timeout = timeout )
                url = listener.start()
            else:
                portStart, portEnd = config[ 'callback_port_range' ]
                url, listener = start_callback_server_in_range( portStart, portEnd, sink, timeout = timeout )
        except CallbackBindError as e:
            print( str( e ) )
            sys.exit( 1 )

        print( "Waiting for OAuth redirect on: %s" % ( url, ) )
        try:
            # Short waits so Ctrl-C is handled promptly.
            while not listener.wait( timeout = 0.5 ):
                pass
        except KeyboardInterrupt:
            listener.cancel()
            print( "\nCancelled." )
            sys.exit( 1 )

        if listener.state == CallbackListener.TIMED_OUT:
            print( "No redirect received within %s seconds." % ( timeout, ) )
            sys.exit( 1 )
        if listener.state != CallbackListener.NOTIFIED:
            print( "Callback connection closed before a request was received." )
            sys.exit( 1 )

        params = listener.params or {}
        if listenArgs.json:
            print( prettyFormatDict( params ) )
        else:
            print( formatCallbackParams( params ) )

        result = CallbackResult.from_params( params )
        print( formatCallbackResult( result ) )
        if not result.success:
            sys.exit( 1 )
    elif args.action.lower() == 'serve':
        from .bridge import Bridge

        config = load_config()
        Bridge( sys.stdin, sys.stdout, callback_timeout = config[ 'callback_timeout' ] ).serve()
    else:
        raise Exception( 'invalid action: %s' % ( args.action.lower() ) )

def main():
    args = sys.argv

    # Hack since we don't have access to parsed args here and parsing itself may fail
    debug_mode = False
    if "--debug" in args:
        debug_mode = True
        args.remove("--debug")
        from .utils import set_default_print_debug_fn
        set_default_print_debug_fn(lambda x: print(x, file=sys.stderr))

    try:
        cli(args)
    except Exception as e:
        print("Error:", e, file=sys.stderr)

        if debug_mode:
            print(traceback.format_exc(), file=sys.stderr)

        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
