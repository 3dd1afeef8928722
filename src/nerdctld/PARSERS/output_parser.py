# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Parsers for nerdctl output.

Listing commands print one JSON object per line, ``inspect`` commands print a
JSON array, ``version`` and ``info`` a single object, and ``rmi`` prints text.
"""
import json
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import OutputParseError

RecordT = TypeVar("RecordT", bound=BaseModel)


def parse_json_lines(text: str) -> List[Dict[str, Any]]:
    """
    Parses JSON-lines output into a list of mappings.

    :param text: Raw stdout.
    :return: One mapping per non-blank line.
    :raises OutputParseError: If a line is not a JSON object.
    """
    records = []
    for number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise OutputParseError(f"line {number}: {e.msg}: {line[:80]!r}") from None
        if not isinstance(record, dict):
            raise OutputParseError(f"line {number}: expected a JSON object")
        records.append(record)
    return records


def parse_json_blob(text: str) -> Any:
    """
    Parses a single JSON document.

    :raises OutputParseError: If the text is not JSON.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise OutputParseError(f"invalid JSON output: {e.msg}") from None


def build_record(model: Type[RecordT], data: Any) -> RecordT:
    """
    Validates one mapping into a record model.

    :raises OutputParseError: If required fields are missing or mistyped.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise OutputParseError(
            f"unexpected {model.__name__} output: {e.error_count()} invalid field(s), "
            f"first: {e.errors()[0]['loc']} {e.errors()[0]['msg']}"
        ) from None


def parse_records(model: Type[RecordT], text: str) -> List[RecordT]:
    """
    Parses JSON-lines output into record models.
    """
    return [build_record(model, record) for record in parse_json_lines(text)]


def parse_inspect(text: str) -> List[Dict[str, Any]]:
    """
    Parses ``inspect`` output, a JSON array of objects.
    """
    data = parse_json_blob(text) if text.strip() else []
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
        raise OutputParseError("expected a JSON array of objects from inspect")
    return data


def parse_rmi(text: str) -> List[Dict[str, str]]:
    """
    Parses ``nerdctl rmi`` output into Docker's delete response items.

    Lines look like ``Untagged: docker.io/library/alpine:latest@sha256:...``
    or ``Deleted: sha256:...``; anything else is ignored.
    """
    items = []
    for line in text.splitlines():
        for key in ("Untagged", "Deleted"):
            prefix = f"{key}:"
            if line.startswith(prefix):
                items.append({key: line[len(prefix):].strip()})
    return items


def drop_nulls(data: Any) -> Any:
    """
    Removes ``null`` members from inspect output, recursively.

    nerdctl serializes empty Go slices and maps as ``null``; dropping them
    lets the response models fall back to their empty defaults.
    """
    if isinstance(data, dict):
        return {k: drop_nulls(v) for k, v in data.items() if v is not None}
    if isinstance(data, list):
        return [drop_nulls(v) for v in data if v is not None]
    return data
