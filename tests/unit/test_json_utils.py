import io
import json

from oauthbridge import json_utils  # wraps orjson
from oauthbridge.models import OAuthResult, OAuthStatus

def test_dumps_no_indent_no_sort():
    obj = {"b": 1, "a": 2}
    # Our function output (compact form)
    our_output = json_utils.dumps(obj)
    # Standard json.dumps output with compact separators
    std_output = json.dumps(obj, separators=(',', ':'))
    assert our_output == std_output

def test_dumps_with_indent_and_sort_keys():
    obj = {"b": 1, "a": 2}
    our_output = json_utils.dumps(obj, indent=2, sort_keys=True)
    std_output = json.dumps(obj, indent=2, sort_keys=True)
    # Compare line by line to avoid differences in trailing whitespace.
    assert our_output.strip().splitlines() == std_output.strip().splitlines()

def test_loads_with_str_and_bytes():
    obj = {"code": "ABC123", "state": "xyz"}
    json_str = json.dumps(obj, separators=(',', ':'))

    assert json_utils.loads(json_str) == obj
    assert json_utils.loads(json_str.encode('utf-8')) == obj

def test_models_are_serialized_through_to_dict():
    payload = {
        "flow_id": "f1",
        "result": OAuthResult(True, "google"),
        "statuses": [OAuthStatus("google")],
    }

    assert json.loads(json_utils.dumps(payload)) == {
        "flow_id": "f1",
        "result": {
            "success": True,
            "provider": "google",
            "tokens": None,
            "error": None,
            "error_description": None,
        },
        "statuses": [{
            "provider": "google",
            "is_authenticated": False,
            "expires_at": None,
            "last_refresh": None,
        }],
    }

def test_unserializable_raises():
    import pytest
    with pytest.raises(TypeError):
        json_utils.dumps({"x": object()})

def test_dump_line():
    stream = io.StringIO()

    json_utils.dump_line({"event": "oauth-server-callback", "payload": {}}, stream)
    json_utils.dump_line({"id": 1, "result": None}, stream)

    lines = stream.getvalue().split('\n')
    assert lines[-1] == ''
    assert [json.loads(l) for l in lines[:-1]] == [
        {"event": "oauth-server-callback", "payload": {}},
        {"id": 1, "result": None},
    ]
