from scalargrad.core.autograd import Value
from scalargrad.core.activations import (
    Activation,
    relu,
    sigmoid,
    softmax,
)
from scalargrad.core.losses import (
    LOSSES,
    binary_cross_entropy,
    categorical_cross_entropy,
    get_loss,
)
from scalargrad.core.nn import (
    Module,
    Neuron,
    Layer,
    Network,
    BinaryClassifier,
    MultiClassClassifier,
    build_classifier,
)
from scalargrad.core.optim import SGD
from scalargrad.core.trainer import (
    Trainer,
    TrainingReport,
    split_dataset,
)
from scalargrad.core.serialization import (
    ModelLoadError,
    save_model,
    load_model,
    load_metadata,
)
