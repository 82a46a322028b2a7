"""
scalargrad quickstart: differentiate an expression, train XOR, save the model.

Everything runs on plain Python floats; no numeric libraries are involved.

    python examples/quickstart.py
"""

import logging
import random
import tempfile
from pathlib import Path

import scalargrad
from scalargrad.config import ScalargradConfig
from scalargrad.core import LOSSES, BinaryClassifier, MultiClassClassifier, Trainer, Value
from scalargrad.core import registry
from scalargrad.datasets import simple_multiclass, xor

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s %(message)s")


# -- Step 1: Gradients of a scalar expression -------------------------------

x = Value(2.0)
y = Value(-3.0)
z = (x * y + x ** 2).sigmoid()
z.backward()

print(f"z = {z.data:.4f}")
print(f"dz/dx = {x.grad:.4f}, dz/dy = {y.grad:.4f}")


# -- Step 2: Train a binary classifier on XOR -------------------------------
# Four samples are too few to hold out validation/test rows, so train on all.

model = BinaryClassifier(2, [8, 8], rng=random.Random(0))
trainer = Trainer(
    model,
    LOSSES["binary_cross_entropy"],
    learning_rate=0.1,
    epochs=2000,
    batch_size=1,
    rng=random.Random(0),
)
report = trainer.train(list(xor()), split=False)

print(f"\nXOR: final loss {report.final_loss:.4f}, accuracy {report.test_accuracy:.0%}")
for features, target in xor():
    print(f"  {features} -> {model.predict_proba(features)[0]:.3f} (target {int(target)})")


# -- Step 3: Multi-class with a softmax output ------------------------------

data = simple_multiclass()
mc_model = MultiClassClassifier(data.num_features, [8], data.num_classes, rng=random.Random(1))
mc_trainer = Trainer(
    mc_model,
    LOSSES["categorical_cross_entropy"],
    learning_rate=0.1,
    epochs=300,
    batch_size=1,
)
mc_report = mc_trainer.train(list(data), split=False)

point = [0.95, 0.05]
print(f"\nClusters: accuracy {mc_report.test_accuracy:.0%}")
print(f"  {point} -> {data.class_names[mc_model.predict(point)]}")


# -- Step 4: Store and reload through the model registry --------------------

with tempfile.TemporaryDirectory() as tmp:
    scalargrad.init(ScalargradConfig(db_path=Path(tmp) / "models.db"))

    version = registry.save_model("xor", model, report)
    restored = registry.load_model("xor")

    print(f"\nSaved 'xor' v{version}; reloaded {restored.num_parameters()} parameters")
    print(f"  reloaded prediction for [1, 0]: {restored.predict([1.0, 0.0])}")
    print(f"  registry: {[m['name'] for m in registry.list_models()]}")
