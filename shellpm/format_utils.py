"""
Output format utilities for shellpm CLI commands.

Provides functions to format records as JSONL, JSON, YAML, CSV and TSV.
"""

import csv
import io
import json
import os
from typing import Dict, List, Any, Iterable, Iterator, Optional

import yaml

FORMATS = ('jsonl', 'json', 'yaml', 'csv', 'tsv')


def format_output(data: Iterable[Dict[str, Any]], format: str,
                  fields: Optional[List[str]] = None) -> Iterator[str]:
    """
    Format records according to the specified format.

    Args:
        data: Dictionaries to format
        format: Output format (jsonl, json, yaml, csv, tsv)
        fields: Optional list of fields to include (for CSV/TSV)

    Yields:
        Formatted strings for output
    """
    if format == "jsonl":
        for item in data:
            yield json.dumps(item, ensure_ascii=False)
    elif format == "json":
        yield json.dumps(list(data), ensure_ascii=False, indent=2)
    elif format == "yaml":
        yield yaml.safe_dump(list(data), default_flow_style=False, allow_unicode=True, sort_keys=False).rstrip()
    elif format == "csv":
        yield from _format_delimited(data, ',', fields)
    elif format == "tsv":
        yield from _format_delimited(data, '\t', fields)
    else:
        raise ValueError(f"Unknown format: {format}")


def _format_delimited(data: Iterable[Dict[str, Any]], delimiter: str,
                      fields: Optional[List[str]]) -> Iterator[str]:
    rows = [flatten_dict(item) for item in data]
    if not rows:
        return

    if fields is None:
        # Keep first-seen column order across rows with differing keys
        fields = []
        for row in rows:
            fields.extend(key for key in row if key not in fields)

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fields, delimiter=delimiter,
                            extrasaction='ignore', lineterminator='\n')
    writer.writeheader()
    writer.writerows(rows)
    yield output.getvalue().rstrip('\n')


def flatten_dict(d: Dict[str, Any], parent_key: str = '', sep: str = '.') -> Dict[str, Any]:
    """
    Flatten a nested dictionary.

    Example:
        {'a': {'b': 1, 'c': 2}, 'l': [1, 2]} -> {'a.b': 1, 'a.c': 2, 'l': '1, 2'}
    """
    items: Dict[str, Any] = {}
    for k, v in d.items():
        new_key = f"{parent_key}{sep}{k}" if parent_key else k
        if isinstance(v, dict):
            items.update(flatten_dict(v, new_key, sep=sep))
        elif isinstance(v, (list, tuple)):
            items[new_key] = ', '.join(str(item) for item in v)
        else:
            items[new_key] = v
    return items


def get_format_from_env(default: str = 'jsonl') -> str:
    """Output format from SHELLPM_FORMAT, falling back to default."""
    value = os.environ.get('SHELLPM_FORMAT', default).lower()
    return value if value in FORMATS else default
