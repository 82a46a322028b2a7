"""
Mini-batch trainer.

Per sample: forward, loss, zero grads, backward, add the parameter grads into
a positional accumulator. Every batch_size samples (or at the end of the
training partition) the accumulator is averaged over the samples actually in
the batch, written back into each grad, and the optimizer steps.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, Sequence

from scalargrad.core.autograd import Value
from scalargrad.core.nn import Network, predicted_class
from scalargrad.core.optim import SGD
from scalargrad.protocols import LossFunction

logger = logging.getLogger(__name__)

Sample = tuple[Sequence[float], float]


# ============================================================================
# DATASET SPLIT
# ============================================================================

def split_ratios(n_samples: int) -> tuple[float, float, float]:
    """(train, validation, test) fractions for a dataset of this size."""
    if n_samples < 100:
        return 0.6, 0.2, 0.2
    if n_samples < 100_000:
        return 0.7, 0.15, 0.15
    return 0.98, 0.01, 0.01


def split_dataset(
    samples: Sequence[Sample],
    rng: Optional[random.Random] = None,
) -> tuple[list[Sample], list[Sample], list[Sample]]:
    """Shuffle a copy of samples and cut it into train/validation/test."""
    rng = rng or random.Random()
    shuffled = list(samples)
    rng.shuffle(shuffled)

    n = len(shuffled)
    train_ratio, val_ratio, _ = split_ratios(n)
    n_train = int(n * train_ratio)
    n_val = int(n * val_ratio)

    return (
        shuffled[:n_train],
        shuffled[n_train:n_train + n_val],
        shuffled[n_train + n_val:],
    )


# ============================================================================
# REPORT
# ============================================================================

@dataclass
class EpochLog:
    epoch: int
    train_loss: float
    val_accuracy: float


@dataclass
class TrainingReport:
    """What a training run did. Accuracies are fractions in [0, 1]."""

    epochs: int
    train_size: int
    val_size: int
    test_size: int
    final_loss: Optional[float] = None
    test_accuracy: Optional[float] = None
    history: list[EpochLog] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "epochs": self.epochs,
            "train_size": self.train_size,
            "val_size": self.val_size,
            "test_size": self.test_size,
            "final_loss": self.final_loss,
            "test_accuracy": self.test_accuracy,
            "history": [
                {"epoch": h.epoch, "train_loss": h.train_loss, "val_accuracy": h.val_accuracy}
                for h in self.history
            ],
        }


# ============================================================================
# TRAINER
# ============================================================================

class Trainer:
    """Trains a network with SGD on averaged mini-batch gradients."""

    def __init__(
        self,
        model: Network,
        loss_fn: LossFunction,
        learning_rate: float = 0.01,
        epochs: int = 100,
        batch_size: int = 32,
        log_every: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        if model is None:
            raise ValueError("model cannot be None")
        if epochs < 1:
            raise ValueError(f"epochs must be positive, got {epochs}")
        if batch_size < 1:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        if log_every is not None and log_every < 1:
            raise ValueError(f"log_every must be positive, got {log_every}")

        self.model = model
        self.loss_fn = loss_fn
        self.optimizer = SGD(learning_rate)
        self.epochs = epochs
        self.batch_size = batch_size
        # Default: report about ten times over the run
        self.log_every = log_every or max(1, epochs // 10)
        self.rng = rng or random.Random()

    @property
    def learning_rate(self) -> float:
        return self.optimizer.learning_rate

    @learning_rate.setter
    def learning_rate(self, lr: float):
        self.optimizer.learning_rate = lr

    def train(self, samples: Sequence[Sample], split: bool = True) -> TrainingReport:
        """Run the full protocol and return a TrainingReport.

        With split=False every sample is used for training and accuracy is
        reported on the training set.
        """
        if len(samples) == 0:
            raise ValueError("Dataset cannot be empty")
        self._check_targets(samples)

        if split:
            train_set, val_set, test_set = split_dataset(samples, self.rng)
        else:
            train_set, val_set, test_set = list(samples), [], []
        if not train_set:
            raise ValueError(f"Dataset of {len(samples)} samples leaves no training partition")

        batch_size = min(self.batch_size, len(train_set))
        report = TrainingReport(
            epochs=self.epochs,
            train_size=len(train_set),
            val_size=len(val_set),
            test_size=len(test_set),
        )

        logger.info(
            f"[Trainer] Training for {self.epochs} epochs: "
            f"train={len(train_set)}, val={len(val_set)}, test={len(test_set)}, "
            f"batch_size={batch_size}, lr={self.learning_rate}"
        )
        if not val_set:
            logger.info("[Trainer] No validation partition, reporting accuracy on the training set")

        for epoch in range(1, self.epochs + 1):
            epoch_loss = self._run_epoch(train_set, batch_size)
            report.final_loss = epoch_loss

            if epoch % self.log_every == 0 or epoch == self.epochs:
                val_acc = self.evaluate(val_set or train_set)
                report.history.append(EpochLog(epoch, epoch_loss, val_acc))
                logger.info(
                    f"[Trainer] Epoch {epoch:4d} | loss={epoch_loss:.6f} | val_acc={val_acc * 100:.2f}%"
                )

        if test_set:
            report.test_accuracy = self.evaluate(test_set)
            logger.info(f"[Trainer] Test accuracy: {report.test_accuracy * 100:.2f}%")
        else:
            report.test_accuracy = self.evaluate(train_set)
            logger.info(
                f"[Trainer] No test partition, training accuracy: {report.test_accuracy * 100:.2f}%"
            )

        return report

    def _run_epoch(self, train_set: list[Sample], batch_size: int) -> float:
        """One pass over the training partition. Returns the mean sample loss."""
        params = self.model.parameters()
        accumulated = [0.0] * len(params)
        in_batch = 0
        total_loss = 0.0

        for i, (features, target) in enumerate(train_set):
            inputs = [Value(f) for f in features]
            predictions = self.model(inputs)
            loss = self.loss_fn(predictions, target)
            total_loss += loss.data

            self.model.zero_grad()
            loss.backward()

            for k, p in enumerate(params):
                accumulated[k] += p.grad
            in_batch += 1

            # Per-sample graph is unreachable once these go
            del inputs, predictions, loss

            if in_batch == batch_size or i == len(train_set) - 1:
                for k, p in enumerate(params):
                    p.grad = accumulated[k] / in_batch
                self.optimizer.step(params)
                logger.debug(f"[Trainer] Optimizer step on batch of {in_batch}")
                accumulated = [0.0] * len(params)
                in_batch = 0

        return total_loss / len(train_set)

    def evaluate(self, samples: Sequence[Sample]) -> float:
        """Classification accuracy (fraction correct) using forward passes only."""
        if len(samples) == 0:
            return 0.0
        correct = 0
        for features, target in samples:
            outputs = [v.data for v in self.model(features)]
            if predicted_class(outputs) == int(target):
                correct += 1
        return correct / len(samples)

    def _check_targets(self, samples: Sequence[Sample]):
        n_outputs = getattr(self.model, "n_outputs", None)
        if n_outputs is None:
            return
        n_classes = 2 if n_outputs == 1 else n_outputs
        for features, target in samples:
            if target != int(target) or not 0 <= target < n_classes:
                raise IndexError(
                    f"target {target} out of range for a model with {n_classes} classes"
                )
