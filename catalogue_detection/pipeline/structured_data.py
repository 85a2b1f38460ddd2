# catalogue_detection/pipeline/structured_data.py
"""
Parsing and walking of embedded JSON-LD.

Each ``<script type="application/ld+json">`` block is parsed into a list of
:class:`SchemaNode` objects. Walking is always depth-bounded so that hostile or
cyclic markup cannot blow the stack.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import json5

logger = logging.getLogger(__name__)

MAX_DEPTH = 16

# Keys that hold nested entities we are interested in, in the order we follow them.
CONTAINER_KEYS = ("itemListElement", "hasMenu", "hasMenuSection", "hasMenuItem")


@dataclass(frozen=True)
class SchemaNode:
    """A single JSON-LD entity (a JSON object), with helpers for the loose ways sites fill it in."""
    data: Dict[str, Any]

    @property
    def types(self) -> List[str]:
        raw = self.data.get("@type")
        if isinstance(raw, str):
            return [_strip_vocab(raw)]
        if isinstance(raw, list):
            return [_strip_vocab(t) for t in raw if isinstance(t, str)]
        return []

    def is_a(self, *type_names: str) -> bool:
        return any(t in type_names for t in self.types)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def text(self, key: str) -> Optional[str]:
        """A scalar property as a stripped string; named nodes give their name."""
        value = self.data.get(key)
        if isinstance(value, list):
            value = value[0] if value else None
        if isinstance(value, dict):
            value = value.get("name") or value.get("@value")
        if value is None or isinstance(value, (dict, list)):
            return None
        text = str(value).strip()
        return text or None

    def children(self, key: str) -> List["SchemaNode"]:
        """Nested entities under ``key``; a single object is treated as a one-item list."""
        value = self.data.get(key)
        if value is None:
            return []
        values = value if isinstance(value, list) else [value]
        return [SchemaNode(v) for v in values if isinstance(v, dict)]

    def child(self, key: str) -> Optional["SchemaNode"]:
        nodes = self.children(key)
        return nodes[0] if nodes else None

    def unwrap_list_item(self) -> "SchemaNode":
        """ItemList entries are often ListItem wrappers around the real entity in 'item'."""
        inner = self.data.get("item")
        if isinstance(inner, dict):
            return SchemaNode(inner)
        return self


def _strip_vocab(type_name: str) -> str:
    for prefix in ("https://schema.org/", "http://schema.org/", "schema:"):
        if type_name.startswith(prefix):
            return type_name[len(prefix):]
    return type_name


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        pass
    # Hand-written JSON-LD often has trailing commas or single quotes; json5 accepts both.
    try:
        return json5.loads(text)
    except (ValueError, IndexError, RecursionError):
        return None


def parse_json_ld_block(text: str) -> Optional[List[SchemaNode]]:
    """
    Parses one JSON-LD block. Returns the top-level entities (arrays and @graph flattened),
    or None when the block is not valid JSON/JSON5.
    """
    if not text or not text.strip():
        return None
    data = _loads(text.strip())
    if data is None:
        logger.debug("Skipping malformed JSON-LD block (first 100 chars): %s", text.strip()[:100])
        return None

    nodes: List[SchemaNode] = []
    pending = data if isinstance(data, list) else [data]
    for entry in pending:
        if not isinstance(entry, dict):
            continue
        graph = entry.get("@graph")
        if isinstance(graph, list):
            nodes.extend(SchemaNode(g) for g in graph if isinstance(g, dict))
            if len(entry) > 2 or "@type" in entry:
                nodes.append(SchemaNode({k: v for k, v in entry.items() if k != "@graph"}))
        else:
            nodes.append(SchemaNode(entry))
    return nodes


def parse_json_ld_blocks(blocks: List[str]) -> List[SchemaNode]:
    """Parses every block, silently dropping the ones that fail."""
    parsed = (parse_json_ld_block(block) for block in blocks)
    return [node for nodes in parsed if nodes is not None for node in nodes]


def walk(node: SchemaNode, visit: Callable[[SchemaNode, int], None], depth: int = 0) -> None:
    """
    Depth-first walk through the containers that hold catalogue/menu entities.
    ``visit`` is called for every node, including list entries unwrapped from ListItem.
    """
    if depth > MAX_DEPTH:
        logger.debug("JSON-LD nesting deeper than %d levels, stopping walk.", MAX_DEPTH)
        return
    visit(node, depth)
    for key in CONTAINER_KEYS:
        for child in node.children(key):
            if key == "itemListElement":
                child = child.unwrap_list_item()
            walk(child, visit, depth + 1)


def collect_nodes(roots: List[SchemaNode]) -> List[SchemaNode]:
    """Every node reachable from ``roots`` through the known containers."""
    collected: List[SchemaNode] = []
    for root in roots:
        walk(root, lambda n, _depth: collected.append(n))
    return collected
