"""Persistence codec for version chains.

On disk a chain is compact JSON, gzip-compressed::

    {
      "c": "<current id>",
      "i": {
        "<root id>":  {"t": 1700000000000, "b": "<full body>", "s": null},
        "<child id>": {"p": "<parent id>", "t": 1700000000500, "d": "<patch>", "s": [3, 1]}
      }
    }
"""

from __future__ import annotations

import gzip
import json
import zlib
from typing import Any

from .chain import DeltaNode, RootNode, SnapshotChain, VersionNode
from .errors import StoreCorruptError


def _encode_stats(stats: tuple[int, int] | None) -> list[int] | None:
    return [stats[0], stats[1]] if stats is not None else None


def _decode_stats(raw: Any) -> tuple[int, int] | None:
    if raw is None:
        return None
    if isinstance(raw, list) and len(raw) == 2 and all(isinstance(v, int) for v in raw):
        return (raw[0], raw[1])
    raise ValueError(f"bad stats {raw!r}")


def _encode_node(node: VersionNode) -> dict[str, Any]:
    if isinstance(node, RootNode):
        return {"t": node.timestamp, "b": node.body, "s": _encode_stats(node.stats)}
    return {"p": node.parent_id, "t": node.timestamp, "d": node.patch, "s": _encode_stats(node.stats)}


def _decode_node(node_id: str, raw: Any) -> VersionNode:
    if not isinstance(raw, dict):
        raise ValueError(f"node {node_id} is not an object")

    timestamp = raw.get("t")
    if not isinstance(timestamp, int):
        raise ValueError(f"node {node_id} has no timestamp")
    stats = _decode_stats(raw.get("s"))

    has_body = "b" in raw
    has_patch = "p" in raw or "d" in raw
    if has_body == has_patch:
        raise ValueError(f"node {node_id} must carry either a body or a patch")

    if has_body:
        if not isinstance(raw["b"], str):
            raise ValueError(f"node {node_id} body is not text")
        return RootNode(id=node_id, timestamp=timestamp, body=raw["b"], stats=stats)

    parent_id, patch = raw.get("p"), raw.get("d")
    if not isinstance(parent_id, str) or not isinstance(patch, str):
        raise ValueError(f"node {node_id} has an incomplete patch")
    return DeltaNode(id=node_id, timestamp=timestamp, parent_id=parent_id, patch=patch, stats=stats)


def chain_to_dict(chain: SnapshotChain) -> dict[str, Any]:
    return {
        "c": chain.current_id,
        "i": {node_id: _encode_node(node) for node_id, node in chain.nodes.items()},
    }


def chain_from_dict(data: Any) -> SnapshotChain:
    """Rebuild a chain from its compact dictionary form.

    Raises:
        ValueError: If the structure breaks the chain invariants
    """
    if not isinstance(data, dict):
        raise ValueError("chain is not an object")

    raw_nodes = data.get("i", {})
    if not isinstance(raw_nodes, dict):
        raise ValueError("node map is not an object")

    nodes = {str(node_id): _decode_node(str(node_id), raw) for node_id, raw in raw_nodes.items()}

    roots = [n for n in nodes.values() if isinstance(n, RootNode)]
    if nodes and len(roots) != 1:
        raise ValueError(f"expected exactly one root, found {len(roots)}")

    current_id = data.get("c")
    if current_id is not None and (not isinstance(current_id, str) or current_id not in nodes):
        raise ValueError(f"current pointer {current_id!r} is not a known version")
    if nodes and current_id is None:
        raise ValueError("non-empty chain has no current pointer")

    return SnapshotChain(nodes=nodes, current_id=current_id)


def encode_chain(chain: SnapshotChain) -> bytes:
    """Serialize and compress a chain for storage."""
    text = json.dumps(chain_to_dict(chain), ensure_ascii=False, separators=(",", ":"))
    return gzip.compress(text.encode("utf-8", "surrogatepass"), mtime=0)


def decode_chain(data: bytes, artifact: str = "<memory>") -> SnapshotChain:
    """Decompress and parse a stored chain.

    Args:
        data: Bytes produced by encode_chain
        artifact: Name used in error messages

    Raises:
        StoreCorruptError: If the bytes cannot be decompressed or parsed
    """
    try:
        text = gzip.decompress(data).decode("utf-8", "surrogatepass")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise StoreCorruptError(artifact, f"cannot decompress: {e}") from e

    try:
        return chain_from_dict(json.loads(text))
    except (json.JSONDecodeError, ValueError) as e:
        raise StoreCorruptError(artifact, str(e)) from e
