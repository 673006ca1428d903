import json

from .report import TITLE


def fmt(value):
    if value is None or value == "":
        return "-"
    return json.dumps({TITLE: value})
