import json
import struct

import numpy as np
import pytest

from forestspec import Options, ProblemSpec
from forestspec.errors import PreconditionViolation
from forestspec.problem import LabelType
from forestspec.persist import (
    CONFIG_MAGIC,
    HEADER_SIZE,
    describe,
    pack_config,
    read_config,
    unpack_config,
    write_config,
)


@pytest.fixture
def weighted_spec(populated_spec):
    return populated_spec.set_class_weights([1.0, 2.0, 0.5])


class TestBinaryContainer:

    def test_header(self, tuned_options, weighted_spec):
        blob = pack_config(tuned_options, weighted_spec)
        assert blob[:4] == CONFIG_MAGIC
        assert blob[4] == 1
        assert struct.unpack_from("<II", blob, 8) == (11, weighted_spec.serialized_size())
        assert len(blob) == HEADER_SIZE + 8 * (11 + weighted_spec.serialized_size())

    def test_round_trip(self, tuned_options, weighted_spec):
        opts, spec = unpack_config(pack_config(tuned_options, weighted_spec))
        assert opts == tuned_options
        assert spec == weighted_spec

    def test_bad_magic(self, tuned_options, populated_spec):
        blob = bytearray(pack_config(tuned_options, populated_spec))
        blob[0:4] = b"GL1F"
        with pytest.raises(PreconditionViolation, match="magic"):
            unpack_config(bytes(blob))

    def test_bad_version(self, tuned_options, populated_spec):
        blob = bytearray(pack_config(tuned_options, populated_spec))
        blob[4] = 9
        with pytest.raises(PreconditionViolation, match="version"):
            unpack_config(bytes(blob))

    def test_truncated(self, tuned_options, populated_spec):
        blob = pack_config(tuned_options, populated_spec)
        with pytest.raises(PreconditionViolation):
            unpack_config(blob[:-8])
        with pytest.raises(PreconditionViolation):
            unpack_config(blob[:10])


class TestFiles:

    @pytest.mark.parametrize("name", ["cfg.rfc", "cfg.npz", "nested/dir/cfg.bin"])
    def test_write_read(self, tmp_path, tuned_options, weighted_spec, name):
        path = tmp_path / name
        size = write_config(path, tuned_options, weighted_spec)
        assert size == path.stat().st_size
        opts, spec = read_config(path)
        assert opts == tuned_options
        assert spec == weighted_spec
        assert spec.class_label_type == LabelType.INT32

    def test_npz_keys(self, tmp_path, tuned_options, populated_spec):
        path = tmp_path / "cfg.npz"
        write_config(path, tuned_options, populated_spec)
        with np.load(path) as z:
            assert "format_version" in z.files
            assert "options/tree_count" in z.files
            assert "problem_spec/classes" in z.files
            assert z["options/tree_count"][0] == 100.0

    def test_npz_without_version_rejected(self, tmp_path):
        path = tmp_path / "other.npz"
        np.savez(path, X=np.zeros(3))
        with pytest.raises(PreconditionViolation):
            read_config(path)


class TestDescribe:

    def test_summary(self, tuned_options, weighted_spec):
        d = describe(tuned_options, weighted_spec)
        json.dumps(d)
        assert d["kind"] == "RF_CONFIG"
        assert d["options"]["treeCount"] == 100
        assert d["options"]["stratification"] == "equal"
        assert d["options"]["sampleFraction"] == 0.5
        assert d["options"]["mtry"] == 7
        assert d["problem"]["problemType"] == "classification"
        assert d["problem"]["labelType"] == "int32"
        assert d["problem"]["classes"] == [3, 5, 9]
        assert d["problem"]["classWeights"] == [1.0, 2.0, 0.5]

    def test_defaults_have_no_weights(self):
        d = describe(Options(), ProblemSpec())
        assert "classWeights" not in d["problem"]
        assert d["options"]["mtryMode"] == "sqrt"
        assert d["problem"]["used"] is False


def test_describe_reports_stored_labels_in_their_type(tmp_path, tuned_options, populated_spec):
    path = tmp_path / "cfg.rfc"
    write_config(path, tuned_options, populated_spec)
    d = describe(*read_config(path))
    assert d["problem"]["classes"] == [3, 5, 9]
    assert all(isinstance(c, int) for c in d["problem"]["classes"])
