import os
import sys
import json

from pygments import highlight, lexers, formatters
from tabulate import tabulate
from termcolor import colored

from .models import CallbackResult


def useColors():
    """
    Return true if we should use ANSI colors in the output.
    :return: True if ANSI colors should be used, False otherwise.
    """
    # Check if stdout is a tty (i.e., terminal)
    if not sys.stdout.isatty():
        return False

    # Optionally, disable colors if the NO_COLOR environment variable is set
    if "NO_COLOR" in os.environ:
        return False

    # Also, sometimes checking TERM helps to avoid "dumb" terminals
    term = os.environ.get("TERM", "")
    if term == "dumb":
        return False

    return True

def prettyFormatDict(data: dict, use_colors: bool = None, indent: int = 2) -> str:
    """
    Pretty format a dictionary to a string, optionally with ANSI colors.

    :param data: The dictionary to format.
    :param use_colors: Whether to use ANSI colors.
    :param indent: The number of spaces to use for indentation.
    :return: The formatted string.
    """
    formatted_json = json.dumps(data, sort_keys=True, indent=indent)

    use_colors = (use_colors if use_colors is not None else useColors())
    if use_colors:
        return highlight(formatted_json, lexers.JsonLexer(), formatters.TerminalFormatter())
    return formatted_json

def formatCallbackParams(params: dict) -> str:
    """
    Format captured callback parameters as a table, one row per parameter.
    """
    if not params:
        return "(no parameters)"
    rows = [[key, value] for key, value in sorted(params.items())]
    return tabulate(rows, headers=["parameter", "value"], tablefmt="grid")

def formatCallbackResult(result: CallbackResult, use_colors: bool = None) -> str:
    """
    One line summary of a callback outcome, green on success and red otherwise.
    """
    if result.success:
        message = "Authorization code received."
        color = "green"
    else:
        message = "Authorization failed: %s" % (result.error,)
        if result.error_description:
            message += " (%s)" % (result.error_description,)
        color = "red"

    use_colors = (use_colors if use_colors is not None else useColors())
    if use_colors:
        return colored(message, color)
    return message
