"""
Module which contains utils for encoding the bridge's JSON messages.

Functions exposed here are made compatible with stdlib json mode, but they utilize orjson
for better performance. Model objects are serialized through their to_dict() method.
"""

import orjson

def _default(obj):
    toDict = getattr(obj, 'to_dict', None)
    if callable(toDict):
        return toDict()
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError("Type is not JSON serializable: %s" % type(obj).__name__)

def dumps(obj, *, default=None, indent=None, sort_keys=False):
    option = 0

    if indent is not None:
        option |= orjson.OPT_INDENT_2

    if sort_keys:
        option |= orjson.OPT_SORT_KEYS

    return orjson.dumps(obj, default=default or _default, option=option).decode('utf-8')

def loads(s):
    # Accept either str or bytes
    if isinstance(s, str):
        s = s.encode('utf-8')
    return orjson.loads(s)

def dump_line(obj, fp):
    """Write obj as a single line of JSON and flush, for line based streams."""
    fp.write(dumps(obj) + '\n')
    fp.flush()
