"""
Helpers for reading multipart forms into plain field values and file parts.
"""

from typing import Dict, Iterable, List, Any
from starlette.datastructures import FormData, UploadFile
import json


def form_files(form: FormData, field: str) -> List[UploadFile]:
    """File parts sent under ``field``; empty file inputs are skipped."""
    return [
        value for value in form.getlist(field)
        if isinstance(value, UploadFile) and value.filename
    ]


def form_fields(
    form: FormData,
    exclude: Iterable[str] = (),
    list_fields: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Text fields of a form as a dict.

    Repeated keys keep their last value, except ``list_fields`` which collect
    every value. A single list value holding a JSON array is decoded.
    """
    excluded = set(exclude)
    repeated = set(list_fields)
    fields: Dict[str, Any] = {}

    for key in form.keys():
        if key in excluded or key in fields:
            continue
        values = [value for value in form.getlist(key) if isinstance(value, str)]
        if not values:
            continue

        if key in repeated:
            if len(values) == 1 and values[0].strip().startswith("["):
                try:
                    decoded = json.loads(values[0])
                except ValueError:
                    decoded = values
                fields[key] = decoded if isinstance(decoded, list) else values
            else:
                fields[key] = values
        else:
            fields[key] = values[-1]

    return fields
