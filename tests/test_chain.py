"""Tests for version chains, reconstruction and the persistence codec."""

import gzip
import json

import pytest

from autosnap.core.chain import DeltaNode, RootNode, SnapshotChain, reconstruct, to_base36
from autosnap.core.codec import decode_chain, encode_chain
from autosnap.core.errors import CorruptChainError, StoreCorruptError, VersionNotFoundError
from autosnap.core.patch import make_patch


def build_linear(contents: list[str]) -> tuple[SnapshotChain, list[str]]:
    """Build a chain by appending each content in turn."""
    chain = SnapshotChain()
    ids = []
    for i, content in enumerate(contents):
        node_id, ts = chain.new_id(1_700_000_000_000 + i)
        if chain.is_empty:
            chain.add(RootNode(id=node_id, timestamp=ts, body=content))
        else:
            parent = chain.current_id
            patch = make_patch(reconstruct(chain, parent), content)
            chain.add(DeltaNode(id=node_id, timestamp=ts, parent_id=parent, patch=patch, stats=(1, 0)))
        ids.append(node_id)
    return chain, ids


def build_branching() -> tuple[SnapshotChain, dict[str, str]]:
    """root -> a, then pivot back to root and branch root -> b."""
    chain, ids = build_linear(["base\n", "base\nbranch a\n"])
    root_id, a_id = ids
    chain.pivot(root_id)
    b_id, ts = chain.new_id(1_700_000_000_100)
    chain.add(DeltaNode(
        id=b_id,
        timestamp=ts,
        parent_id=root_id,
        patch=make_patch("base\n", "branch b\nbase\n"),
        stats=(1, 0),
    ))
    return chain, {"root": root_id, "a": a_id, "b": b_id}


class TestIds:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_id_is_derived_from_time(self):
        chain = SnapshotChain()
        node_id, ts = chain.new_id(1_700_000_000_000)

        assert ts == 1_700_000_000_000
        assert node_id == to_base36(ts)

    def test_same_millisecond_gets_fresh_id(self):
        chain, ids = build_linear(["one\n"])
        ts = chain.nodes[ids[0]].timestamp

        node_id, new_ts = chain.new_id(ts)

        assert node_id != ids[0]
        assert new_ts == ts + 1

    def test_clock_going_back_keeps_order(self):
        chain, ids = build_linear(["one\n", "two\n"])

        _, ts = chain.new_id(0)

        assert ts > max(n.timestamp for n in chain.nodes.values())


class TestChainMutation:
    def test_second_root_rejected(self):
        chain, _ = build_linear(["one\n"])

        with pytest.raises(ValueError):
            chain.add(RootNode(id="other", timestamp=1, body="x"))

    def test_duplicate_id_rejected(self):
        chain, ids = build_linear(["one\n"])

        with pytest.raises(ValueError):
            chain.add(DeltaNode(id=ids[0], timestamp=1, parent_id=ids[0], patch="{}"))

    def test_pivot_unknown_id(self):
        chain, _ = build_linear(["one\n"])

        with pytest.raises(VersionNotFoundError):
            chain.pivot("missing")

    def test_children_after_branch(self):
        chain, ids = build_branching()

        kids = [n.id for n in chain.children(ids["root"])]

        assert kids == [ids["a"], ids["b"]]


class TestReconstruct:
    def test_every_version_is_rebuilt(self):
        contents = ["v0\n", "v0\nv1\n", "v1\n", "v1\nv3\nmore\n", ""]
        chain, ids = build_linear(contents)

        for node_id, expected in zip(ids, contents):
            assert reconstruct(chain, node_id) == expected

    def test_branches_are_rebuilt(self):
        chain, ids = build_branching()

        assert reconstruct(chain, ids["root"]) == "base\n"
        assert reconstruct(chain, ids["a"]) == "base\nbranch a\n"
        assert reconstruct(chain, ids["b"]) == "branch b\nbase\n"

    def test_unknown_id(self):
        chain, _ = build_linear(["one\n"])

        with pytest.raises(VersionNotFoundError):
            reconstruct(chain, "missing")

    def test_missing_parent(self):
        chain = SnapshotChain(
            nodes={"b": DeltaNode(id="b", timestamp=2, parent_id="a", patch="{}")},
            current_id="b",
        )

        with pytest.raises(CorruptChainError):
            reconstruct(chain, "b")

    def test_parent_loop(self):
        chain = SnapshotChain(
            nodes={
                "a": DeltaNode(id="a", timestamp=1, parent_id="b", patch="{}"),
                "b": DeltaNode(id="b", timestamp=2, parent_id="a", patch="{}"),
            },
            current_id="a",
        )

        with pytest.raises(CorruptChainError):
            reconstruct(chain, "a")

    def test_patch_that_does_not_apply(self):
        chain = SnapshotChain(
            nodes={
                "r": RootNode(id="r", timestamp=1, body="actual\n"),
                "c": DeltaNode(id="c", timestamp=2, parent_id="r", patch=make_patch("other\n", "new\n")),
            },
            current_id="c",
        )

        with pytest.raises(CorruptChainError):
            reconstruct(chain, "c")


class TestCodec:
    def test_empty_chain_round_trip(self):
        chain = SnapshotChain()

        assert decode_chain(encode_chain(chain)) == chain

    def test_single_root_round_trip(self):
        chain, _ = build_linear(["only\n"])

        assert decode_chain(encode_chain(chain)) == chain

    def test_branching_round_trip(self):
        chain, ids = build_branching()

        decoded = decode_chain(encode_chain(chain))

        assert decoded == chain
        assert decoded.current_id == ids["b"]
        assert decoded.nodes[ids["a"]].stats == (1, 0)

    def test_undecodable_bytes_survive(self):
        body = b"caf\xe9\n".decode("utf-8", "surrogateescape")
        chain, _ = build_linear([body, body + "more\n"])

        assert decode_chain(encode_chain(chain)) == chain

    def test_compact_layout(self):
        chain, ids = build_linear(["a\n", "b\n"])

        data = json.loads(gzip.decompress(encode_chain(chain)))

        assert data["c"] == ids[1]
        assert data["i"][ids[0]] == {"t": 1_700_000_000_000, "b": "a\n", "s": None}
        assert data["i"][ids[1]]["p"] == ids[0]
        assert "b" not in data["i"][ids[1]]

    def test_garbage_is_store_corrupt(self):
        with pytest.raises(StoreCorruptError):
            decode_chain(b"definitely not gzip")

    def test_truncated_artifact_is_store_corrupt(self):
        chain, _ = build_linear(["a\n", "b\n"])

        with pytest.raises(StoreCorruptError):
            decode_chain(encode_chain(chain)[:-6])

    def test_invalid_json_is_store_corrupt(self):
        with pytest.raises(StoreCorruptError):
            decode_chain(gzip.compress(b"{not json"))

    def test_two_roots_is_store_corrupt(self):
        raw = {"c": "a", "i": {"a": {"t": 1, "b": "x"}, "b": {"t": 2, "b": "y"}}}

        with pytest.raises(StoreCorruptError):
            decode_chain(gzip.compress(json.dumps(raw).encode()))

    def test_body_and_patch_together_is_store_corrupt(self):
        raw = {"c": "a", "i": {"a": {"t": 1, "b": "x", "p": "z", "d": "{}"}}}

        with pytest.raises(StoreCorruptError):
            decode_chain(gzip.compress(json.dumps(raw).encode()))

    def test_dangling_current_pointer_is_store_corrupt(self):
        raw = {"c": "nope", "i": {"a": {"t": 1, "b": "x"}}}

        with pytest.raises(StoreCorruptError):
            decode_chain(gzip.compress(json.dumps(raw).encode()))
