"""
Data Encoder

Wraps untrusted content in a delimited envelope so prompt templates can tell
the model to treat everything inside it as data, never as instructions.

    <DATA label="selected_text">
    {
      "content": "..."
    }
    </DATA>

Angle brackets inside the JSON payload are emitted as \\u003c / \\u003e, so
the content can never close the envelope early, and the label is attribute
escaped.
"""

import html
import json
from typing import Any

DATA_OPEN = '<DATA label="{label}">'
DATA_CLOSE = "</DATA>"


def encode_as_data(label: str, content: Any) -> str:
    """
    Encode content as an inert data block.

    Args:
        label: Short name describing the content (e.g. "selected_text")
        content: Any JSON-serializable value; non-serializable values fall back to str()

    Returns:
        Envelope string
    """
    payload = json.dumps({"content": content}, indent=2, ensure_ascii=False, default=str)
    payload = payload.replace("<", "\\u003c").replace(">", "\\u003e")
    return f"{DATA_OPEN.format(label=html.escape(label, quote=True))}\n{payload}\n{DATA_CLOSE}"
