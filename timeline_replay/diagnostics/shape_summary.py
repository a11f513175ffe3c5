"""Abstract shape tree of a JSON document: types, key names, and value categories only."""

from typing import Any

from timeline_replay.core.limits import DiagnosticLimits
from timeline_replay.core.report_schema import SchemaNode
from timeline_replay.core.schema import JsonType, json_type_of
from timeline_replay.ingestion.classifiers import classify_number, describe_string_shape

ARRAY_SAMPLE_KEY = "[sample]"


def extract_schema(node: Any, limits: DiagnosticLimits, depth: int = 0) -> SchemaNode:
    """
    Describe the shape of node without copying any of its values.

    Arrays are summarized by their length and the shape of their first element.
    Objects list their first shape_max_keys key names and expand the first
    shape_max_expanded_keys of them. Recursion stops at shape_max_depth.
    """
    if depth > limits.shape_max_depth:
        return SchemaNode(type=JsonType.OBJECT, truncated=True)

    json_type = json_type_of(node)
    if json_type == JsonType.STRING:
        return SchemaNode(type=json_type, sample_string_format=describe_string_shape(node))
    if json_type == JsonType.NUMBER:
        return SchemaNode(
            type=json_type, number_range=classify_number(node, limits.number_thresholds)
        )
    if json_type == JsonType.ARRAY:
        schema = SchemaNode(type=json_type, array_length=len(node))
        if node:
            schema.children = {ARRAY_SAMPLE_KEY: extract_schema(node[0], limits, depth + 1)}
        return schema
    if json_type == JsonType.OBJECT:
        keys = list(node)
        schema = SchemaNode(type=json_type, keys=keys[: limits.shape_max_keys])
        if depth < limits.shape_max_depth:
            schema.children = {
                key: extract_schema(node[key], limits, depth + 1)
                for key in keys[: limits.shape_max_expanded_keys]
            }
        return schema
    return SchemaNode(type=json_type)


def collect_key_names(schema: SchemaNode) -> set[str]:
    """Every object key name that appears anywhere in the shape tree."""
    names: set[str] = set()
    pending = [schema]
    while pending:
        current = pending.pop()
        if current.keys:
            names.update(current.keys)
        if current.children:
            pending.extend(current.children.values())
    return names
