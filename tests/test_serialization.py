"""
Tests for model persistence: JSON files on disk and the sqlite model registry.
"""

import json
import random
import tempfile
from pathlib import Path

import pytest


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(scope="module")
def registry_db():
    """Initialize scalargrad with a throwaway registry database."""
    import scalargrad
    from scalargrad.config import ScalargradConfig

    tmpdir = tempfile.mkdtemp(prefix="scalargrad_registry_")
    db_path = Path(tmpdir) / "registry.db"
    scalargrad.init(ScalargradConfig(db_path=db_path))
    return db_path


def _binary(seed=0):
    from scalargrad.core.nn import BinaryClassifier
    return BinaryClassifier(2, [4, 3], rng=random.Random(seed))


def _multiclass(seed=0):
    from scalargrad.core.nn import MultiClassClassifier
    return MultiClassClassifier(3, [5], 4, rng=random.Random(seed))


# ============================================================================
# FILE FORMAT
# ============================================================================

class TestRecord:
    def test_metadata(self):
        from scalargrad.core.serialization import to_record
        record = to_record(_binary())
        meta = record["metadata"]
        assert meta["kind"] == "binary"
        assert meta["input_size"] == 2
        assert meta["layer_sizes"] == [4, 3, 1]
        assert meta["activations"] == ["relu", "relu", "sigmoid"]
        assert meta["total_parameters"] == len(record["parameters"]) == 31

    def test_record_is_json_serializable(self):
        from scalargrad.core.serialization import to_record
        json.dumps(to_record(_multiclass()))

    def test_from_record_restores_parameters(self):
        from scalargrad.core.serialization import from_record, to_record
        model = _multiclass(seed=3)
        restored = from_record(to_record(model))
        assert type(restored).__name__ == "MultiClassClassifier"
        assert [p.data for p in restored.parameters()] == [p.data for p in model.parameters()]
        assert restored.predict_proba([0.1, 0.5, 0.9]) == model.predict_proba([0.1, 0.5, 0.9])

    def test_generic_network(self):
        from scalargrad.core.activations import Activation
        from scalargrad.core.nn import Network
        from scalargrad.core.serialization import from_record, to_record
        model = Network(2, [(3, Activation.SIGMOID), (2, Activation.LINEAR)], rng=random.Random(0))
        restored = from_record(to_record(model))
        assert restored.layer_sizes() == [3, 2]
        assert [layer.activation for layer in restored.layers] == [
            Activation.SIGMOID, Activation.LINEAR,
        ]
        assert restored.predict_proba([0.3, 0.4]) == model.predict_proba([0.3, 0.4])

    def test_parameter_count_mismatch(self):
        from scalargrad.core.serialization import ModelLoadError, from_record, to_record
        record = to_record(_binary())
        record["parameters"] = record["parameters"][:-1]
        with pytest.raises(ModelLoadError):
            from_record(record)

    def test_metadata_count_mismatch(self):
        from scalargrad.core.serialization import ModelLoadError, from_record, to_record
        record = to_record(_binary())
        record["metadata"]["total_parameters"] += 1
        with pytest.raises(ModelLoadError):
            from_record(record)

    def test_architecture_mismatch(self):
        """Same number of values, but metadata describes a different network."""
        from scalargrad.core.serialization import ModelLoadError, from_record, to_record
        record = to_record(_binary())
        record["metadata"]["layer_sizes"] = [5, 3, 1]
        with pytest.raises(ModelLoadError):
            from_record(record)

    @pytest.mark.parametrize("record", [
        {},
        {"metadata": {"kind": "binary"}, "parameters": []},
        {"metadata": {"kind": "binary", "input_size": 2, "layer_sizes": [1],
                      "total_parameters": 3}, "parameters": ["x", 1, 2]},
        {"metadata": {"kind": "perceptron", "input_size": 2, "layer_sizes": [1],
                      "total_parameters": 3}, "parameters": [0, 1, 2]},
        {"metadata": {"kind": "multiclass", "input_size": 2, "layer_sizes": [1],
                      "total_parameters": 3}, "parameters": [0, 1, 2]},
    ])
    def test_malformed_records(self, record):
        from scalargrad.core.serialization import ModelLoadError, from_record
        with pytest.raises(ModelLoadError):
            from_record(record)


class TestFiles:
    def test_save_and_load(self, tmp_path):
        from scalargrad.core.serialization import load_model, save_model
        model = _binary(seed=9)
        path = save_model(model, tmp_path / "model.json")
        restored = load_model(path)
        assert [p.data for p in restored.parameters()] == [p.data for p in model.parameters()]

    def test_load_metadata(self, tmp_path):
        from scalargrad.core.serialization import load_metadata, save_model
        path = save_model(_multiclass(), tmp_path / "mc.json")
        meta = load_metadata(path)
        assert meta.kind == "multiclass"
        assert meta.hidden_sizes == [5]
        assert meta.layer_sizes[-1] == 4

    def test_missing_file(self, tmp_path):
        from scalargrad.core.serialization import ModelLoadError, load_model
        with pytest.raises(ModelLoadError):
            load_model(tmp_path / "nope.json")

    def test_corrupt_file(self, tmp_path):
        from scalargrad.core.serialization import ModelLoadError, load_model
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ModelLoadError):
            load_model(path)

    def test_truncated_parameters_on_disk(self, tmp_path):
        from scalargrad.core.serialization import ModelLoadError, load_model, save_model
        path = save_model(_binary(), tmp_path / "short.json")
        record = json.loads(path.read_text())
        record["parameters"].pop()
        path.write_text(json.dumps(record))
        with pytest.raises(ModelLoadError):
            load_model(path)


# ============================================================================
# REGISTRY
# ============================================================================

class TestRegistry:
    def test_save_and_load(self, registry_db):
        from scalargrad.core import registry
        model = _binary(seed=5)
        version = registry.save_model("reg-binary", model)
        assert version == 1
        restored = registry.load_model("reg-binary")
        assert [p.data for p in restored.parameters()] == [p.data for p in model.parameters()]

    def test_resave_bumps_version(self, registry_db):
        from scalargrad.core import registry
        registry.save_model("reg-versioned", _binary(seed=1))
        version = registry.save_model("reg-versioned", _multiclass(seed=2))
        assert version == 2
        info = registry.get_model_info("reg-versioned")
        assert info["kind"] == "multiclass"
        assert info["version"] == 2
        assert info["layer_sizes"] == [5, 4]

    def test_training_report_stored(self, registry_db):
        from scalargrad.core import registry
        from scalargrad.core.trainer import EpochLog, TrainingReport
        report = TrainingReport(
            epochs=3, train_size=6, val_size=2, test_size=2,
            final_loss=0.25, test_accuracy=0.5,
            history=[EpochLog(3, 0.25, 0.5)],
        )
        registry.save_model("reg-report", _binary(), report)
        info = registry.get_model_info("reg-report")
        assert info["training"]["final_loss"] == 0.25
        assert info["training"]["history"][0]["epoch"] == 3

    def test_list_and_delete(self, registry_db):
        from scalargrad.core import registry
        registry.save_model("reg-delete-me", _binary())
        names = [m["name"] for m in registry.list_models()]
        assert "reg-delete-me" in names
        assert names == sorted(names)

        assert registry.delete_model("reg-delete-me") is True
        assert registry.get_model_info("reg-delete-me") is None
        assert registry.delete_model("reg-delete-me") is False

    def test_missing_model(self, registry_db):
        from scalargrad.core import registry
        from scalargrad.core.serialization import ModelLoadError
        assert registry.get_model_info("reg-missing") is None
        with pytest.raises(ModelLoadError):
            registry.load_model("reg-missing")

    def test_migration_recorded(self, registry_db):
        from scalargrad.core.db import _db, init_db
        init_db()  # idempotent
        with _db() as db:
            rows = db.execute("SELECT version FROM schema_migrations").fetchall()
        assert [r["version"] for r in rows] == [1]
