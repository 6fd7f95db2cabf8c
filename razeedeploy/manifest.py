"""Manifest nodes.

Raw YAML documents are classified once into ``Leaf`` or ``ListNode`` and the
engines only ever see the classified tree.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union


@dataclass
class Leaf:
    document: Dict[str, Any]

    @property
    def kind(self) -> str:
        return self.document.get("kind") or ""

    @property
    def api_version(self) -> str:
        return self.document.get("apiVersion") or ""

    @property
    def metadata(self) -> Dict[str, Any]:
        meta = self.document.get("metadata")
        if not isinstance(meta, dict):
            meta = self.document["metadata"] = {}
        return meta

    @property
    def name(self) -> Optional[str]:
        return (self.document.get("metadata") or {}).get("name")

    @property
    def namespace(self) -> Optional[str]:
        return (self.document.get("metadata") or {}).get("namespace")

    @namespace.setter
    def namespace(self, value: str) -> None:
        self.metadata["namespace"] = value

    def describe(self) -> str:
        return (
            f"{{ kind: {self.kind}, apiVersion: {self.api_version}, "
            f"name: {self.name}, namespace: {self.namespace} }}"
        )


@dataclass
class ListNode:
    children: List["ManifestNode"] = field(default_factory=list)


ManifestNode = Union[Leaf, ListNode]


def _is_list_document(raw: Dict[str, Any]) -> bool:
    kind = raw.get("kind") or ""
    if not isinstance(kind, str):
        return False
    return kind.lower().endswith("list") and isinstance(raw.get("items"), list)


def classify(raw: Any) -> Optional[ManifestNode]:
    """Turn a raw document (or sequence of documents) into a node.

    Empty documents and scalars yield ``None``. Documents are deep-copied.
    """
    if isinstance(raw, (Leaf, ListNode)):
        return raw
    if isinstance(raw, (list, tuple)):
        return ListNode([n for n in (classify(r) for r in raw) if n is not None])
    if not raw or not isinstance(raw, dict):
        return None
    if _is_list_document(raw):
        return ListNode([n for n in (classify(r) for r in raw["items"]) if n is not None])
    return Leaf(copy.deepcopy(raw))


def flatten(node: Union[ManifestNode, Sequence[Any], Dict[str, Any], None]) -> List[Leaf]:
    node = classify(node)
    if node is None:
        return []
    if isinstance(node, Leaf):
        return [node]
    out: List[Leaf] = []
    for child in node.children:
        out.extend(flatten(child))
    return out
