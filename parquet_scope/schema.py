"""
Schema tree reconstruction.

The footer stores the schema as a flat depth-first list in which each group
announces how many children follow it. ``SchemaTreeBuilder`` rebuilds the
nested tree with an explicit stack and computes, for every leaf, the maximum
definition and repetition levels the page decoder needs to reassemble
nullable and repeated values.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import MalformedSchema
from .model import LogicalType, SchemaElement

GROUP = "group"
LEAF = "leaf"


@dataclass(frozen=True)
class SchemaNode:
    kind: str
    name: str
    repetition: Optional[str]
    children: tuple = ()
    depth: int = 0
    path: tuple = ()
    definition_level: int = 0
    repetition_level: int = 0
    physical_type: Optional[str] = None
    type_length: Optional[int] = None
    converted_type: Optional[str] = None
    logical_type: Optional[LogicalType] = None
    scale: Optional[int] = None
    precision: Optional[int] = None
    field_id: Optional[int] = None
    column_index: Optional[int] = None

    @property
    def is_leaf(self):
        return self.kind == LEAF

    @property
    def dotted_path(self):
        return ".".join(self.path)

    @property
    def type_description(self):
        if not self.is_leaf:
            if self.logical_type is not None:
                return self.logical_type.describe()
            return "group"
        if self.logical_type is not None:
            return f"{self.physical_type} {self.logical_type.describe()}"
        return self.physical_type


class _OpenGroup(object):
    __slots__ = ("element", "remaining", "children", "depth", "path", "definition_level", "repetition_level")

    def __init__(self, element, depth, path, definition_level, repetition_level):
        self.element = element
        self.remaining = element.num_children or 0
        self.children = []
        self.depth = depth
        self.path = path
        self.definition_level = definition_level
        self.repetition_level = repetition_level


class SchemaTreeBuilder(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, elements):
        self.elements = tuple(elements)

    def build(self):
        if not self.elements:
            raise MalformedSchema("Schema has no elements")
        root = self.elements[0]
        if not root.is_group:
            raise MalformedSchema(f"Schema root '{root.name}' is not a group")
        if root.num_children is not None and root.num_children < 0:
            raise MalformedSchema(f"Schema root '{root.name}' declares {root.num_children} children")

        stack = [_OpenGroup(root, 0, (), 0, 0)]
        column_index = 0
        position = 1
        tree = None

        if stack[-1].remaining == 0:
            tree = self._close(stack.pop())

        while stack:
            if position >= len(self.elements):
                raise MalformedSchema(
                    f"Schema ended with {len(stack)} open group(s); "
                    f"'{stack[-1].element.name}' is missing {stack[-1].remaining} child(ren)"
                )
            element = self.elements[position]
            position += 1
            parent = stack[-1]
            parent.remaining -= 1

            if element.repetition is None:
                raise MalformedSchema(f"Schema element '{element.name}' has no repetition type")
            path = parent.path + (element.name,)
            definition_level = parent.definition_level + (element.repetition != "REQUIRED")
            repetition_level = parent.repetition_level + (element.repetition == "REPEATED")
            depth = parent.depth + 1

            if element.is_group:
                if element.num_children is not None and element.num_children < 0:
                    raise MalformedSchema(f"Group '{element.name}' declares {element.num_children} children")
                stack.append(_OpenGroup(element, depth, path, definition_level, repetition_level))
            else:
                if element.num_children:
                    raise MalformedSchema(
                        f"Leaf '{element.name}' of type {element.physical_type} "
                        f"declares {element.num_children} children"
                    )
                parent.children.append(
                    SchemaNode(
                        kind=LEAF,
                        name=element.name,
                        repetition=element.repetition,
                        depth=depth,
                        path=path,
                        definition_level=definition_level,
                        repetition_level=repetition_level,
                        physical_type=element.physical_type,
                        type_length=element.type_length,
                        converted_type=element.converted_type,
                        logical_type=element.logical_type,
                        scale=element.scale,
                        precision=element.precision,
                        field_id=element.field_id,
                        column_index=column_index,
                    )
                )
                column_index += 1

            # Close every group whose children are now complete.
            while stack and stack[-1].remaining == 0:
                node = self._close(stack.pop())
                if stack:
                    stack[-1].children.append(node)
                else:
                    tree = node

        if position != len(self.elements):
            raise MalformedSchema(
                f"{len(self.elements) - position} schema element(s) follow the root group; "
                f"expected exactly one root"
            )
        self.logger.debug(f"Built schema tree with {column_index} leaf column(s)")
        return tree

    @staticmethod
    def _close(group):
        element = group.element
        return SchemaNode(
            kind=GROUP,
            name=element.name,
            repetition=element.repetition,
            children=tuple(group.children),
            depth=group.depth,
            path=group.path,
            definition_level=group.definition_level,
            repetition_level=group.repetition_level,
            converted_type=element.converted_type,
            logical_type=element.logical_type,
            field_id=element.field_id,
        )


def build_schema_tree(elements):
    return SchemaTreeBuilder(elements).build()


def iter_nodes(node):
    """Depth-first, pre-order traversal including ``node`` itself."""
    yield node
    for child in node.children:
        yield from iter_nodes(child)


def leaves(node):
    return [n for n in iter_nodes(node) if n.is_leaf]


def find(node, path):
    """Find the node at ``path`` (a dotted string or a tuple of names)."""
    if isinstance(path, str):
        path = tuple(path.split(".")) if path else ()
    for candidate in iter_nodes(node):
        if candidate.path == tuple(path):
            return candidate
    return None


def flatten(node):
    """Inverse of ``build_schema_tree``: the flat depth-first element list."""
    elements = []
    for n in iter_nodes(node):
        elements.append(
            SchemaElement(
                name=n.name,
                physical_type=n.physical_type,
                type_length=n.type_length,
                repetition=n.repetition,
                num_children=None if n.is_leaf else len(n.children),
                converted_type=n.converted_type,
                logical_type=n.logical_type,
                scale=n.scale,
                precision=n.precision,
                field_id=n.field_id,
            )
        )
    return elements


def ancestry(root, leaf):
    """Nodes on the path from just below ``root`` down to ``leaf``."""
    chain = []
    node = root
    for name in leaf.path:
        node = next((c for c in node.children if c.name == name), None)
        if node is None:
            raise MalformedSchema(f"Path {leaf.dotted_path} is not in the schema")
        chain.append(node)
    return chain
